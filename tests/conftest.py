"""
Shared fixtures for PortalDesk tests.

NOTE: pytest is listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import os
import shutil
import tempfile
from datetime import datetime, timezone

import pytest
from flask import Flask

from portaldesk import PortalDesk


def ts(text):
    """Aware UTC datetime from 'YYYY-MM-DD' or a full ISO string"""
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def build_app(db_dir, features=None):
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    app.config["DB_DIR"] = db_dir
    app.config["BANNERS_DB"] = os.path.join(db_dir, "banners.db")
    app.config["USER_DB"] = os.path.join(db_dir, "users.db")
    app.config["LOG_DB"] = os.path.join(db_dir, "app_log.db")
    app.config["REALTIME_WEBHOOK_URLS"] = []
    PortalDesk(app, {'features': features or {}})
    return app


@pytest.fixture
def tmp_db_dir():
    """Create a temporary directory for test databases, cleaned up after."""
    d = tempfile.mkdtemp(prefix="portaldesk-test-")
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def app(tmp_db_dir):
    """Fully initialised Flask app with all PortalDesk modules registered."""
    return build_app(tmp_db_dir)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    """Test client with an admin session"""
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['admin_id'] = 1
    return client


@pytest.fixture
def service(app):
    """BannerService bound to the test app, used inside an app context"""
    with app.app_context():
        yield app.extensions['portaldesk'].banner_service


@pytest.fixture
def db_path(tmp_db_dir):
    """Bare banners database with tables, no Flask app"""
    from portaldesk.modules.banners.catalog import init_banners_table
    from portaldesk.modules.banners.schedule import init_queue_table

    path = os.path.join(tmp_db_dir, "banners.db")
    init_banners_table(path)
    init_queue_table(path)
    return path
