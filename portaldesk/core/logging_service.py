"""
Centralized logging service for PortalDesk.
Provides structured logging with database storage and easy integration.
"""

import json
import logging
import traceback
from datetime import datetime

from flask import request, session, has_request_context

from .config import get_config_value
from .database import Database

_py_logger = logging.getLogger(__name__)


class LoggingService:
    """Centralized logging service for application-wide logging"""

    _initialized_paths = set()

    @staticmethod
    def _db_path():
        return get_config_value('LOG_DB')

    @staticmethod
    def _ensure_logs_table(db_path):
        """Ensure the app_logs table exists"""
        if db_path in LoggingService._initialized_paths:
            return

        Database.ensure_dir(db_path)
        with Database.transaction(db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS app_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    level TEXT NOT NULL,
                    source TEXT NOT NULL,
                    message TEXT NOT NULL,
                    details TEXT,
                    ip_address TEXT,
                    request_path TEXT,
                    user_id TEXT
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_logs_timestamp
                ON app_logs(timestamp DESC)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_logs_source
                ON app_logs(source)
            """)
        LoggingService._initialized_paths.add(db_path)

    @staticmethod
    def _get_request_context():
        """Extract request context information"""
        if not has_request_context():
            return None, None, None

        ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
        if ip_address and ',' in ip_address:
            ip_address = ip_address.split(',')[0].strip()

        admin_id = session.get('admin_id')
        return ip_address, request.path, str(admin_id) if admin_id is not None else None

    @staticmethod
    def log(level, source, message, details=None, user_id=None):
        """
        Log a message to the database

        Args:
            level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            source (str): Source component (banners, columnists, realtime, etc.)
            message (str): Main log message
            details (str/dict): Additional details (will be JSON-encoded if dict)
            user_id (str): Optional user identifier, defaults to the session admin
        """
        level = level.upper()
        _py_logger.log(getattr(logging, level, logging.INFO), "[%s] %s", source, message)

        try:
            db_path = LoggingService._db_path()
            if not db_path:
                return
            LoggingService._ensure_logs_table(db_path)

            ip_address, request_path, session_user = LoggingService._get_request_context()

            if isinstance(details, dict):
                details = json.dumps(details, indent=2, default=str)

            with Database.transaction(db_path) as conn:
                conn.execute("""
                    INSERT INTO app_logs
                    (timestamp, level, source, message, details, ip_address, request_path, user_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    datetime.now().isoformat(), level, source, message, details,
                    ip_address, request_path, user_id or session_user
                ))

        except Exception as e:
            # message already went to the process logger
            _py_logger.warning("Logging service error: %s", e)

    @staticmethod
    def debug(source, message, details=None, user_id=None):
        LoggingService.log('DEBUG', source, message, details, user_id)

    @staticmethod
    def info(source, message, details=None, user_id=None):
        LoggingService.log('INFO', source, message, details, user_id)

    @staticmethod
    def warning(source, message, details=None, user_id=None):
        LoggingService.log('WARNING', source, message, details, user_id)

    @staticmethod
    def error(source, message, details=None, user_id=None):
        LoggingService.log('ERROR', source, message, details, user_id)

    @staticmethod
    def log_admin_action(source, action, entity_id, details=None, user_id=None):
        """Audit trail entry for an admin write (queue edits, pilot changes, cleanup)"""
        payload = {'action': action, 'entity_id': entity_id}
        if details:
            payload['details'] = details
        LoggingService.info(source, f"Admin action: {action}", payload, user_id)

    @staticmethod
    def log_error_with_traceback(source, error, details=None):
        """Log error with full traceback"""
        error_details = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'traceback': traceback.format_exc()
        }
        if details:
            error_details['additional_details'] = details

        LoggingService.error(source, f"Exception occurred: {type(error).__name__}", error_details)

    @staticmethod
    def get_recent_logs(source=None, limit=50):
        """Most recent log rows, newest first"""
        db_path = LoggingService._db_path()
        if not db_path:
            return []
        LoggingService._ensure_logs_table(db_path)

        with Database.read(db_path) as conn:
            if source:
                rows = conn.execute("""
                    SELECT * FROM app_logs WHERE source = ?
                    ORDER BY id DESC LIMIT ?
                """, (source, limit)).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM app_logs ORDER BY id DESC LIMIT ?", (limit,)
                ).fetchall()
        return [dict(row) for row in rows]


def db_log(level, source, message, details=None):
    """Shorthand used by modules: db_log('error', 'banners', 'msg', {...})"""
    LoggingService.log(level, source, message, details)
