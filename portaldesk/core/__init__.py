"""
PortalDesk Core
===============

Core utilities and shared functionality for PortalDesk modules.
"""

from .config import Config, get_config_value
from .database import Database
from .logging_service import LoggingService, db_log
from .realtime import ChangeHub, ChangeEvent, WebhookRelay

__all__ = [
    'Config', 'get_config_value', 'Database', 'LoggingService', 'db_log',
    'ChangeHub', 'ChangeEvent', 'WebhookRelay',
]
