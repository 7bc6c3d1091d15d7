"""
PortalDesk - Banner scheduling for news/radio portals
=====================================================

A Flask extension bundling the publishing console's banner engine:
- Banner catalog with a single pilot/fallback banner
- Per-slot queue with priority and start/end windows
- Static and per-columnist placement slots
- Expired queue cleanup, on demand or on a timer
- Change notification so readers refetch after admin writes

Usage:
    from flask import Flask
    from portaldesk import PortalDesk

    app = Flask(__name__)
    portaldesk = PortalDesk(app)
"""

import logging
import os

from flask_cors import CORS

from .core.config import Config
from .core.realtime import ChangeHub, WebhookRelay

__version__ = '0.1.0'

logger = logging.getLogger(__name__)

DEFAULT_FEATURES = {
    'banners': True,
    'columnists': True,
}

# app.config keys filled from Config when the host app does not set them
CONFIG_KEYS = (
    'DB_DIR', 'BANNERS_DB', 'USER_DB', 'LOG_DB',
    'BANNER_CLEANUP_INTERVAL', 'BANNER_EMBED_ORIGINS',
    'REALTIME_WEBHOOK_URLS', 'REALTIME_WEBHOOK_TIMEOUT',
)


class PortalDesk:
    """Registers PortalDesk modules on a Flask app"""

    def __init__(self, app=None, config=None):
        self._config = dict(config or {})
        self._registered_modules = []
        self.hub = ChangeHub()
        self.banner_service = None
        self.cleanup_scheduler = None
        if app is not None:
            self.init_app(app)

    @property
    def features(self):
        features = dict(DEFAULT_FEATURES)
        features.update(self._config.get('features', {}))
        return features

    def init_app(self, app):
        self._apply_config_defaults(app)
        self._setup_database_dir(app)

        app.extensions['portaldesk'] = self

        features = self.features
        if features.get('columnists'):
            self._setup_columnists(app)
        if features.get('banners'):
            self._setup_banners(app)

        self._setup_webhooks(app)

    def get_registered_modules(self):
        return list(self._registered_modules)

    # ===== Setup helpers =====

    def _apply_config_defaults(self, app):
        if not app.config.get('DB_DIR'):
            app.config['DB_DIR'] = Config.DB_DIR
        db_dir = app.config['DB_DIR']
        defaults = {
            'BANNERS_DB': os.path.join(db_dir, 'banners.db'),
            'USER_DB': os.path.join(db_dir, 'users.db'),
            'LOG_DB': os.path.join(db_dir, 'app_log.db'),
        }
        for key in CONFIG_KEYS:
            if app.config.get(key) is None:
                app.config[key] = defaults.get(key, getattr(Config, key))
        if not app.config.get('SECRET_KEY') and Config.SECRET_KEY:
            app.config['SECRET_KEY'] = Config.SECRET_KEY

    def _setup_database_dir(self, app):
        os.makedirs(app.config['DB_DIR'], exist_ok=True)

    def _columnist_source(self, app):
        from .modules.columnists.database import get_all_columnists

        def source():
            return get_all_columnists(app.config['USER_DB'], active_only=True)
        return source

    def _setup_columnists(self, app):
        from .modules.columnists import columnists_admin_bp
        from .modules.columnists.database import init_columnists_db

        init_columnists_db(app.config['USER_DB'])
        app.register_blueprint(columnists_admin_bp)
        self._registered_modules.append('columnists')

    def _setup_banners(self, app):
        from .modules.banners import banners_bp, banners_admin_bp
        from .modules.banners.cleanup import CleanupScheduler
        from .modules.banners.service import BannerService

        columnist_source = self._columnist_source(app) if self.features.get('columnists') else None
        self.banner_service = BannerService(app.config['BANNERS_DB'], columnist_source, self.hub)
        self.banner_service.init_db()

        CORS(app, resources={r'/api/banners/*': {'origins': app.config['BANNER_EMBED_ORIGINS']}})
        app.register_blueprint(banners_bp)
        app.register_blueprint(banners_admin_bp)
        self._registered_modules.append('banners')

        self.cleanup_scheduler = CleanupScheduler(
            app, self.banner_service.cleanup_expired, int(app.config['BANNER_CLEANUP_INTERVAL'])
        )
        # starts in every process that builds the extension
        if not app.config.get('TESTING'):
            self.cleanup_scheduler.start()

    def _setup_webhooks(self, app):
        relay = WebhookRelay(app.config['REALTIME_WEBHOOK_URLS'],
                             timeout=app.config['REALTIME_WEBHOOK_TIMEOUT'])
        if relay.attach(self.hub):
            logger.info(f"Forwarding change events to {len(relay.urls)} webhook(s)")


__all__ = ['PortalDesk', '__version__']
