"""
Critical Integration Tests for PortalDesk
=========================================

Focused tests covering the integration points most likely to break:
extension wiring, admin auth, the banner JSON API and change propagation.
Run with: pytest tests/test_critical.py -v

NOTE: pytest is listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import os
import shutil
import tempfile
import threading
import time
from unittest.mock import MagicMock

import pytest
import requests
from flask import Flask

from portaldesk import PortalDesk
from portaldesk.core.realtime import ChangeHub, WebhookRelay
from portaldesk.modules.banners.slots import STATIC_SLOTS, derive_slots

from conftest import build_app

IMG = {'image_url': 'https://cdn.example.com/hero.gif'}


def _create_banner(admin_client, name='Promo', **extra):
    body = {'name': name, 'creative_payload': IMG}
    body.update(extra)
    resp = admin_client.post('/admin/banners/api/banners', json=body)
    assert resp.status_code == 201
    return resp.get_json()['banner']


def _queue(admin_client, banner_id, slot_key='hero', **extra):
    body = {'slot_key': slot_key, 'banner_id': banner_id}
    body.update(extra)
    resp = admin_client.post('/admin/banners/api/queue', json=body)
    assert resp.status_code == 201
    return resp.get_json()['entry']


def _current(client, slot_key='hero', at=None):
    url = f'/api/banners/slots/{slot_key}/current'
    if at:
        url += f'?at={at}'
    return client.get(url)


# ---------------------------------------------------------------------------
# 1. Extension wiring
# ---------------------------------------------------------------------------

def test_extension_initialisation(app):
    """PortalDesk(app) stores itself on the app and registers both modules."""
    ext = app.extensions['portaldesk']
    assert isinstance(ext, PortalDesk)
    assert ext.get_registered_modules() == ['columnists', 'banners']
    assert ext.banner_service is not None
    assert 'banners' in app.blueprints
    assert 'banners_admin' in app.blueprints
    assert 'columnists_admin' in app.blueprints


def test_scheduler_not_started_under_testing(app):
    assert app.extensions['portaldesk'].cleanup_scheduler.running is False


def test_columnists_feature_can_be_disabled(tmp_db_dir):
    app = build_app(tmp_db_dir, features={'columnists': False})

    assert app.extensions['portaldesk'].get_registered_modules() == ['banners']
    with app.app_context():
        slots = app.extensions['portaldesk'].banner_service.list_slots()
    assert [s.key for s in slots] == [s.key for s in STATIC_SLOTS]


def test_database_dir_creation():
    """DB_DIR is created when it does not exist yet."""
    base = tempfile.mkdtemp(prefix="portaldesk-test-")
    nested = os.path.join(base, 'nested', 'dbs')
    try:
        app = Flask(__name__)
        app.config["TESTING"] = True
        app.config["SECRET_KEY"] = "test-secret"
        app.config["DB_DIR"] = nested
        PortalDesk(app)

        assert os.path.isdir(nested)
        assert app.config['BANNERS_DB'] == os.path.join(nested, 'banners.db')
        assert os.path.exists(app.config['BANNERS_DB'])
    finally:
        shutil.rmtree(base, ignore_errors=True)


# ---------------------------------------------------------------------------
# 2. Admin auth
# ---------------------------------------------------------------------------

@pytest.mark.parametrize('method,url', [
    ('get', '/admin/banners/api/banners'),
    ('post', '/admin/banners/api/queue'),
    ('post', '/admin/banners/api/queue/cleanup'),
    ('get', '/admin/columnists/api/columnists'),
])
def test_admin_routes_require_session(client, method, url):
    resp = getattr(client, method)(url, json={})
    assert resp.status_code == 401


def test_public_routes_need_no_session(client):
    assert client.get('/api/banners/slots').status_code == 200
    resp = _current(client)
    assert resp.status_code == 200
    assert resp.get_json() == {'success': True, 'banner': None}


# ---------------------------------------------------------------------------
# 3. Banner API
# ---------------------------------------------------------------------------

def test_queued_banner_is_served(admin_client):
    banner = _create_banner(admin_client)
    entry = _queue(admin_client, banner['id'], priority='3')

    assert entry['priority'] == 3
    data = _current(admin_client).get_json()['banner']
    assert data['id'] == banner['id']
    assert data['source'] == 'schedule'
    assert data['queue_id'] == entry['id']


def test_preview_at_another_time(admin_client):
    low = _create_banner(admin_client, 'Evergreen')
    campaign = _create_banner(admin_client, 'January')
    _queue(admin_client, low['id'], priority=1)
    _queue(admin_client, campaign['id'], priority=2,
           starts_at='2024-01-01T00:00:00Z', ends_at='2024-02-01T00:00:00Z')

    during = _current(admin_client, at='2024-01-15T00:00:00Z').get_json()['banner']
    after = _current(admin_client, at='2024-03-01T00:00:00Z').get_json()['banner']

    assert during['id'] == campaign['id']
    assert after['id'] == low['id']


def test_invalid_preview_time_is_400(client):
    resp = _current(client, at='yesterday')
    assert resp.status_code == 400
    assert resp.get_json()['success'] is False


def test_bad_payload_is_400(admin_client):
    resp = admin_client.post('/admin/banners/api/banners',
                             json={'name': 'No image', 'creative_payload': {}})
    assert resp.status_code == 400


def test_unknown_update_field_is_400(admin_client):
    banner = _create_banner(admin_client)
    resp = admin_client.put(f"/admin/banners/api/banners/{banner['id']}", json={'id': 'hijack'})
    assert resp.status_code == 400


def test_update_missing_banner_is_404(admin_client):
    resp = admin_client.put('/admin/banners/api/banners/missing', json={'name': 'x'})
    assert resp.status_code == 404


def test_delete_unknown_queue_entry_is_404(admin_client):
    assert admin_client.delete('/admin/banners/api/queue/missing').status_code == 404


def test_queue_edit_and_delete(admin_client):
    banner = _create_banner(admin_client)
    entry = _queue(admin_client, banner['id'])

    resp = admin_client.put(f"/admin/banners/api/queue/{entry['id']}", json={'priority': 7})
    assert resp.get_json()['entry']['priority'] == 7

    assert admin_client.delete(f"/admin/banners/api/queue/{entry['id']}").status_code == 200
    assert admin_client.get('/admin/banners/api/queue').get_json() == []


def test_cleanup_endpoint(admin_client):
    banner = _create_banner(admin_client)
    _queue(admin_client, banner['id'], ends_at='2020-01-01T00:00:00Z')
    keep = _queue(admin_client, banner['id'])

    first = admin_client.post('/admin/banners/api/queue/cleanup').get_json()
    second = admin_client.post('/admin/banners/api/queue/cleanup').get_json()

    assert first == {'success': True, 'removed': 1}
    assert second == {'success': True, 'removed': 0}
    remaining = admin_client.get('/admin/banners/api/queue?slot_key=hero').get_json()
    assert [e['id'] for e in remaining] == [keep['id']]


def test_pilot_endpoint_keeps_one_pilot(admin_client):
    a = _create_banner(admin_client, 'A', is_pilot=True)
    b = _create_banner(admin_client, 'B')

    resp = admin_client.post(f"/admin/banners/api/banners/{b['id']}/pilot", json={'is_pilot': True})
    assert resp.status_code == 200

    banners = admin_client.get('/admin/banners/api/banners').get_json()
    assert [x['id'] for x in banners if x['is_pilot']] == [b['id']]
    assert admin_client.get('/admin/banners/api/pilot').get_json()['pilot']['id'] == b['id']

    fallback = _current(admin_client, 'sidebar').get_json()['banner']
    assert fallback['id'] == b['id']
    assert fallback['source'] == 'pilot'
    assert a['is_pilot'] is True
    assert next(x for x in banners if x['id'] == a['id'])['is_pilot'] is False


def test_pilot_endpoint_requires_flag(admin_client):
    banner = _create_banner(admin_client)
    resp = admin_client.post(f"/admin/banners/api/banners/{banner['id']}/pilot", json={})
    assert resp.status_code == 400


def test_audit_endpoint_lists_admin_actions(admin_client):
    _create_banner(admin_client)
    rows = admin_client.get('/admin/banners/api/audit?limit=5').get_json()
    assert rows[0]['message'] == 'Admin action: banner_created'
    assert rows[0]['user_id'] == '1'


def test_public_banner_api_sends_cors_header(client):
    resp = client.get('/api/banners/slots', headers={'Origin': 'https://radio.example.com'})
    assert resp.headers.get('Access-Control-Allow-Origin') in ('*', 'https://radio.example.com')


# ---------------------------------------------------------------------------
# 4. Columnist slots
# ---------------------------------------------------------------------------

def test_columnist_toggle_updates_slots(admin_client):
    resp = admin_client.post('/admin/columnists/api/columnists',
                             json={'id': 'jane', 'name': 'Jane Doe', 'is_active': True})
    assert resp.status_code == 200

    keys = [s['key'] for s in admin_client.get('/api/banners/slots').get_json()]
    assert 'columnist-jane' in keys

    resp = admin_client.post('/admin/columnists/api/columnists/jane/toggle')
    assert resp.get_json()['is_active'] is False

    keys = [s['key'] for s in admin_client.get('/api/banners/slots').get_json()]
    assert 'columnist-jane' not in keys


def test_toggle_unknown_columnist_is_404(admin_client):
    assert admin_client.post('/admin/columnists/api/columnists/nobody/toggle').status_code == 404


def test_columnist_requires_boolean_flag(admin_client):
    resp = admin_client.post('/admin/columnists/api/columnists',
                             json={'id': 'x', 'name': 'X', 'is_active': 'yes'})
    assert resp.status_code == 400


def test_admin_slots_grouped_by_category(admin_client):
    groups = admin_client.get('/admin/banners/api/slots').get_json()
    assert [s['key'] for s in groups['System']] == ['hero', 'sidebar', 'footer']
    assert len(groups['Categories']) == 8


def test_derive_slots_only_counts_explicitly_active_columnists():
    columnists = [
        {'id': 'a', 'name': 'Ann', 'is_active': True},
        {'id': 'b', 'name': 'Bob', 'is_active': False},
        {'id': 'c', 'name': 'Cy'},
    ]

    slots = derive_slots(columnists)

    assert len(slots) == len(STATIC_SLOTS) + 1
    assert slots[-1].key == 'columnist-a'
    assert slots[-1].label == 'Columnist - Ann'
    assert len(derive_slots([])) == 11


# ---------------------------------------------------------------------------
# 5. Change notification
# ---------------------------------------------------------------------------

def test_hub_isolates_failing_subscribers():
    hub = ChangeHub()
    seen = []

    def broken(event):
        raise RuntimeError('boom')

    hub.subscribe('banners', broken)
    hub.subscribe('*', seen.append)
    unsubscribe = hub.subscribe('banners', seen.append)

    hub.publish('banners', 'update', 42)
    unsubscribe()
    hub.publish('banners', 'delete')

    assert [(e.action, e.record_id) for e in seen] == [('update', '42'), ('update', '42'), ('delete', None)]
    assert hub.subscriber_count('banners') == 1


def test_webhook_relay_posts_events():
    session = MagicMock()
    hub = ChangeHub()
    relay = WebhookRelay(['https://edge.example.com/hook'], timeout=2, session=session, background=False)
    relay.attach(hub)

    hub.publish('banner_queue', 'insert', 'q1')

    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args == ('https://edge.example.com/hook',)
    assert kwargs['json']['table'] == 'banner_queue'
    assert kwargs['json']['record_id'] == 'q1'
    assert kwargs['timeout'] == 2


def test_webhook_relay_failure_does_not_break_writes():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError('unreachable')
    hub = ChangeHub()
    relay = WebhookRelay(['https://a.example.com', 'https://b.example.com'], session=session)
    relay.attach(hub)

    hub.publish('banners', 'update', 'b1')
    relay.wait()

    assert session.post.call_count == 2


def test_slow_webhook_does_not_block_publish():
    release = threading.Event()
    session = MagicMock()

    def slow_post(*args, **kwargs):
        release.wait(5)
        return MagicMock()

    session.post.side_effect = slow_post
    hub = ChangeHub()
    relay = WebhookRelay(['https://slow.example.com'], timeout=30, session=session)
    relay.attach(hub)

    started = time.monotonic()
    hub.publish('banners', 'insert', 'b1')
    hub.publish('banners', 'update', 'b1')
    assert time.monotonic() - started < 1

    release.set()
    relay.wait()
    assert session.post.call_count == 2


def test_webhook_relay_without_urls_does_not_subscribe():
    hub = ChangeHub()
    assert WebhookRelay([], session=MagicMock()).attach(hub) is None
    assert hub.subscriber_count('*') == 0


# ---------------------------------------------------------------------------
# 6. Starter app
# ---------------------------------------------------------------------------

def test_health_endpoint(tmp_db_dir, monkeypatch):
    """Starter template app boots and reports registered modules."""
    import importlib.util
    import sys

    monkeypatch.delitem(sys.modules, 'config', raising=False)
    monkeypatch.setenv('DB_DIR', tmp_db_dir)
    monkeypatch.setenv('BANNER_CLEANUP_INTERVAL', '0')
    path = os.path.join(os.path.dirname(__file__), '..', 'starter-template', 'app.py')
    spec = importlib.util.spec_from_file_location('starter_app', path)
    module = importlib.util.module_from_spec(spec)
    monkeypatch.syspath_prepend(os.path.dirname(path))
    spec.loader.exec_module(module)

    resp = module.app.test_client().get('/health')
    assert resp.status_code == 200
    assert resp.get_json()['modules'] == ['columnists', 'banners']
