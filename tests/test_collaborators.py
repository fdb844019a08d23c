"""
Tests for the default collaborator implementations
"""
import hashlib
import hmac
import json
import os
from datetime import timedelta
import pytest
import requests
from unittest.mock import MagicMock, patch

from constants import FILE_TYPE_CONTENT, PERM_EDIT_ADDONS, WEBHOOK_EVENT_MODERATOR_NOTICE, WEBHOOK_EVENT_UPLOADER_NOTICE
from repositories.files_repository import FilesRepository
from services.collaborators import (
    ActivityAuditLog,
    CatalogRegenerator,
    LocalFileStorage,
    UserPermissions,
    WebhookNotifier,
)
from utils import now_utc


class TestUserPermissions:
    """Tests for the Flask-Login backed permission service"""

    def test_anonymous(self, app):
        with app.test_request_context():
            permissions = UserPermissions()
            assert not permissions.is_logged_in()
            assert permissions.current_user_id() is None
            assert not permissions.has_permission(PERM_EDIT_ADDONS)

    def test_logged_in_user(self, app, users):
        from flask_login import login_user

        with app.test_request_context():
            login_user(users['moderator'])
            permissions = UserPermissions()

            assert permissions.is_logged_in()
            assert permissions.current_user_id() == users['moderator'].id
            assert permissions.current_user_name() == 'moderator'
            assert permissions.has_permission(PERM_EDIT_ADDONS)

    def test_plain_user_cannot_edit(self, app, users):
        from flask_login import login_user

        with app.test_request_context():
            login_user(users['uploader'])
            assert not UserPermissions().has_permission(PERM_EDIT_ADDONS)


class TestLocalFileStorage:
    """Tests for file storage and the deferred delete queue"""

    def test_delete_removes_file_and_record(self, storage, make_file):
        record = make_file('archives/a.zip')

        assert storage.delete(record.id)

        assert FilesRepository().get_by_id(record.id) is None
        assert not os.path.exists(storage.full_path('archives/a.zip'))

    def test_delete_unknown(self, storage):
        assert storage.delete(404) is False

    def test_remove_missing_path(self, storage):
        assert storage.remove_path('archives/never-existed.zip')

    def test_queue_delete_sets_date(self, storage, make_file):
        record = make_file('archives/a.zip')

        assert storage.queue_delete(record.id)

        queued = FilesRepository().get_by_id(record.id)
        assert queued.delete_date is not None
        assert os.path.exists(storage.full_path('archives/a.zip'))

    def test_process_delete_queue(self, storage, make_file):
        due = make_file('archives/due.zip')
        pending = make_file('archives/pending.zip')
        files = FilesRepository()
        files.update(due.id, delete_date=now_utc() - timedelta(hours=1))
        files.update(pending.id, delete_date=now_utc() + timedelta(days=1))

        assert storage.process_delete_queue() == 1

        assert files.get_by_id(due.id) is None
        assert files.get_by_id(pending.id) is not None
        assert os.path.exists(storage.full_path('archives/pending.zip'))

    def test_approve(self, storage, make_file):
        record = make_file('archives/a.zip', file_type=FILE_TYPE_CONTENT)

        assert storage.approve(record.id)
        assert FilesRepository().get_by_id(record.id).approved is True
        assert storage.approve(404) is False


class TestWebhookNotifier:
    """Tests for webhook delivery"""

    @pytest.fixture
    def webhooks(self, app):
        from db import db
        from models.webhook import Webhook
        db.session.add_all([
            Webhook(url='https://mods.example.com/hook', events=json.dumps([WEBHOOK_EVENT_MODERATOR_NOTICE]), secret='s3cret'),
            Webhook(url='https://mail.example.com/hook', events=json.dumps([WEBHOOK_EVENT_UPLOADER_NOTICE])),
            Webhook(url='https://off.example.com/hook', events=json.dumps([WEBHOOK_EVENT_MODERATOR_NOTICE]), active=False),
        ])
        db.session.commit()

    def test_moderator_notice_is_signed(self, webhooks):
        with patch('requests.post') as mock_post:
            delivered = WebhookNotifier().send_moderator_notice('New Addon Upload', 'body')

        assert delivered == 1
        mock_post.assert_called_once()
        url = mock_post.call_args[0][0]
        payload = mock_post.call_args[1]['json']
        headers = mock_post.call_args[1]['headers']
        assert url == 'https://mods.example.com/hook'
        assert payload['data'] == {'subject': 'New Addon Upload', 'body': 'body'}
        expected = hmac.new(b's3cret', json.dumps(payload).encode(), hashlib.sha256).hexdigest()
        assert headers['X-AddonDepot-Signature'] == expected

    def test_uploader_notice(self, webhooks):
        with patch('requests.post') as mock_post:
            WebhookNotifier().send_uploader_notice('uploader@example.com', 'speedway', 'notes')

        payload = mock_post.call_args[1]['json']
        assert payload['event'] == WEBHOOK_EVENT_UPLOADER_NOTICE
        assert payload['data'] == {'email': 'uploader@example.com', 'addon_id': 'speedway', 'body': 'notes'}
        assert 'X-AddonDepot-Signature' not in mock_post.call_args[1]['headers']

    def test_delivery_failure_is_tolerated(self, webhooks):
        with patch('requests.post', side_effect=requests.ConnectionError('down')):
            assert WebhookNotifier().send_moderator_notice('subject', 'body') == 0


class TestActivityAuditLog:

    def test_record_writes_row(self, app, users):
        from models.activitylog import ActivityLog
        permissions = MagicMock()
        permissions.current_user_id.return_value = users['moderator'].id

        assert ActivityAuditLog(permissions).record("Deleted add-on 'Speedway'", addon_id='speedway')

        entry = ActivityLog.query.one()
        assert entry.addon_id == 'speedway'
        assert entry.user_id == users['moderator'].id
        assert json.loads(entry.details) == {'message': "Deleted add-on 'Speedway'"}


class TestCatalogRegenerator:

    def test_requests_are_counted(self):
        from metrics import catalog_regenerations_total
        counter = catalog_regenerations_total.labels(catalog='assets')
        before = counter._value.get()

        CatalogRegenerator().regenerate_asset_catalog()

        assert counter._value.get() == before + 1
