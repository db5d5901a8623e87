# ArcRevoke Core Module
from .config import get_settings, settings
from .database import Base, async_session_maker, check_db_connection, engine, get_db
from .logging import setup_logging
from .network import ARC_TESTNET, NetworkConfig, get_network

__all__ = [
    "settings",
    "get_settings",
    "setup_logging",
    "Base",
    "engine",
    "async_session_maker",
    "get_db",
    "check_db_connection",
    "ARC_TESTNET",
    "NetworkConfig",
    "get_network",
]
