"""
Collaborators consumed by the add-on store.

Each class is the default implementation of one external interface:
permission checks, file storage, notifications, audit log and catalog
regeneration. The store only relies on the method names, so tests and
other deployments can pass any object with the same shape.
"""

import datetime
import hashlib
import hmac
import json
import os
from datetime import timedelta

import requests
import structlog
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from constants import PERM_EDIT_ADDONS, WEBHOOK_EVENT_MODERATOR_NOTICE, WEBHOOK_EVENT_UPLOADER_NOTICE
from db import log_activity
from metrics import catalog_regenerations_total
from models.webhook import Webhook
from repositories.files_repository import FilesRepository
from utils import now_utc, ensure_utc

logger = structlog.get_logger("collaborators")


class UserPermissions:
    """Permission checks against the Flask-Login session user"""

    def is_logged_in(self):
        return bool(current_user and current_user.is_authenticated)

    def current_user_id(self):
        if not self.is_logged_in():
            return None
        return current_user.id

    def current_user_name(self):
        if not self.is_logged_in():
            return None
        return current_user.user

    def has_permission(self, permission=PERM_EDIT_ADDONS):
        if not self.is_logged_in():
            return False
        return bool(current_user.has_access(permission))


class LocalFileStorage:
    """Uploaded files stored below a local upload root, indexed by the files table"""

    def __init__(self, upload_dir, files_repository=None, delete_grace_days=1):
        self.upload_dir = upload_dir
        self.files = files_repository or FilesRepository()
        self.delete_grace_days = delete_grace_days

    def path_for(self, file_id):
        """Path of a file record relative to the upload root, None if unknown"""
        record = self.files.get_by_id(file_id)
        if record is None:
            return None
        return record.file_path

    def full_path(self, file_path):
        return os.path.join(self.upload_dir, file_path)

    def exists(self, file_path):
        return bool(file_path) and os.path.isfile(self.full_path(file_path))

    def remove_path(self, file_path):
        """Remove a physical file; a file that is already gone counts as removed"""
        full_path = self.full_path(file_path)
        if not os.path.exists(full_path):
            return True
        try:
            os.remove(full_path)
            logger.info("file_removed", path=file_path)
            return True
        except OSError as e:
            logger.error("file_remove_failed", path=file_path, error=str(e))
            return False

    def delete(self, file_id):
        """Delete a file from disk and drop its record"""
        record = self.files.get_by_id(file_id)
        if record is None:
            return False

        if not self.remove_path(record.file_path):
            return False

        try:
            return self.files.delete(file_id)
        except SQLAlchemyError as e:
            logger.error("file_record_delete_failed", file_id=file_id, error=str(e))
            return False

    def queue_delete(self, file_id):
        """Mark a file for deferred deletion by the delete-queue job"""
        delete_date = now_utc() + timedelta(days=self.delete_grace_days)
        try:
            return self.files.update(file_id, delete_date=delete_date) is not None
        except SQLAlchemyError as e:
            logger.error("file_queue_delete_failed", file_id=file_id, error=str(e))
            return False

    def approve(self, file_id, approved=True):
        try:
            return self.files.update(file_id, approved=bool(approved)) is not None
        except SQLAlchemyError as e:
            logger.error("file_approve_failed", file_id=file_id, error=str(e))
            return False

    def process_delete_queue(self, now=None):
        """Delete every queued file whose delete date has passed. Returns the count deleted."""
        now = now or now_utc()
        deleted = 0
        for record in self.files.get_due_for_deletion(now):
            if ensure_utc(record.delete_date) > ensure_utc(now):
                continue
            if self.delete(record.id):
                deleted += 1
        if deleted:
            logger.info("delete_queue_processed", deleted=deleted)
        return deleted


class WebhookNotifier:
    """Deliver moderator and uploader notices to the configured webhooks"""

    def __init__(self, timeout=5):
        self.timeout = timeout

    def send_moderator_notice(self, subject, body):
        return self._trigger(WEBHOOK_EVENT_MODERATOR_NOTICE, {"subject": subject, "body": body})

    def send_uploader_notice(self, email, addon_id, body):
        return self._trigger(WEBHOOK_EVENT_UPLOADER_NOTICE, {"email": email, "addon_id": addon_id, "body": body})

    def _trigger(self, event_type, data):
        """Post the event to every active webhook subscribed to it. Returns the number delivered."""
        delivered = 0
        webhooks = Webhook.query.filter_by(active=True).all()
        for webhook in webhooks:
            if not webhook.subscribed_to(event_type):
                continue

            payload = {"event": event_type, "timestamp": datetime.datetime.now().isoformat(), "data": data}

            headers = {"Content-Type": "application/json"}
            if webhook.secret:
                signature = hmac.new(webhook.secret.encode(), json.dumps(payload).encode(), hashlib.sha256).hexdigest()
                headers["X-AddonDepot-Signature"] = signature

            try:
                requests.post(webhook.url, json=payload, headers=headers, timeout=self.timeout)
                delivered += 1
                logger.debug("webhook_triggered", url=webhook.url, webhook_event=event_type)
            except requests.RequestException as e:
                logger.warning("webhook_failed", url=webhook.url, webhook_event=event_type, error=str(e))
        return delivered


class ActivityAuditLog:
    """Audit trail stored in the activity_log table"""

    def __init__(self, permissions=None):
        self.permissions = permissions or UserPermissions()

    def record(self, message, addon_id=None, **details):
        return log_activity(
            "addon_event",
            addon_id=addon_id,
            user_id=self.permissions.current_user_id(),
            message=message,
            **details,
        )


class CatalogRegenerator:
    """
    Requests regeneration of the public asset and news catalogs.

    Writing the XML files read by the game client happens outside this
    package; this hook only records that the catalogs are out of date.
    """

    def regenerate_asset_catalog(self):
        catalog_regenerations_total.labels(catalog="assets").inc()
        logger.info("catalog_regeneration_requested", catalog="assets")

    def regenerate_news_catalog(self):
        catalog_regenerations_total.labels(catalog="news").inc()
        logger.info("catalog_regeneration_requested", catalog="news")
