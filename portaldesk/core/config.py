import os
from dotenv import load_dotenv

load_dotenv(override=True)


def _split_env_list(name):
    raw = os.getenv(name, '')
    return [item.strip() for item in raw.split(',') if item.strip()]


class Config:
    """
    Base configuration for PortalDesk.
    Projects should provide database paths via environment variables.
    """
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY')

    # Get DB_DIR from environment, or use a default if not set
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))

    # Database paths - use environment variables or fallback to DB_DIR
    BANNERS_DB = os.getenv('BANNERS_DB', os.path.join(DB_DIR, "banners.db"))
    USER_DB = os.getenv('USER_DB', os.path.join(DB_DIR, "users.db"))
    LOG_DB = os.getenv('LOG_DB', os.path.join(DB_DIR, "app_log.db"))

    # Table names
    BANNERS_TABLE = "banners"
    QUEUE_TABLE = "banner_queue"
    COLUMNISTS_TABLE = "columnists"
    LOGS_TABLE = "app_logs"

    # Expired queue entries are purged this often (seconds). 0 disables the timer.
    BANNER_CLEANUP_INTERVAL = int(os.getenv('BANNER_CLEANUP_INTERVAL', '300'))

    # Origins allowed to fetch the public banner endpoints
    BANNER_EMBED_ORIGINS = _split_env_list('BANNER_EMBED_ORIGINS') or ['*']

    # Change events are POSTed here (comma separated)
    REALTIME_WEBHOOK_URLS = _split_env_list('REALTIME_WEBHOOK_URLS')
    REALTIME_WEBHOOK_TIMEOUT = float(os.getenv('REALTIME_WEBHOOK_TIMEOUT', '5'))


def get_config_value(key, default=None):
    """Get config value: app.config > Config class > env var."""
    try:
        from flask import current_app
        val = current_app.config.get(key)
        if val is not None:
            return val
    except RuntimeError:
        pass
    if hasattr(Config, key):
        return getattr(Config, key)
    return os.getenv(key, default)
