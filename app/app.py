"""
AddonDepot - add-on hosting back end
Application factory
"""
import os
import sys
import logging

import flask.cli
flask.cli.show_server_banner = lambda *args: None

# Core Flask imports
from flask import Flask
from flask_login import LoginManager
import structlog

# Local imports
from constants import *
from settings import load_settings, merge_settings
from db import db, migrate, init_db
from models.user import User
from utils import ColoredFormatter, get_or_create_secret_key
from repositories.files_repository import FilesRepository
from services.addon_service import AddonService
from services.cache_service import CacheRegistry
from services.image_dedup_service import ImageDeduplicator
from services.collaborators import (
    ActivityAuditLog,
    CatalogRegenerator,
    LocalFileStorage,
    UserPermissions,
    WebhookNotifier,
)
from commands import register_commands

# Jobs
from jobs.scheduler import JobScheduler

login_manager = LoginManager()

# Logging configuration
formatter = ColoredFormatter(
    '[%(asctime)s.%(msecs)03d] %(levelname)s (%(module)s) %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(formatter)

logging.basicConfig(
    level=logging.INFO,
    handlers=[handler]
)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if os.environ.get('LOG_FORMAT') == 'json' else structlog.dev.ConsoleRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger('main')

logging.getLogger('alembic.runtime.migration').setLevel(logging.WARNING)


@login_manager.user_loader
def load_user(user_id):
    """Load user for Flask-Login"""
    return db.session.get(User, int(user_id))


def build_services(settings):
    """Wire the add-on store and its default collaborators"""
    storage_settings = settings["storage"]
    site_settings = settings["site"]

    permissions = UserPermissions()
    files = FilesRepository()
    storage = LocalFileStorage(
        storage_settings["upload_dir"],
        files_repository=files,
        delete_grace_days=storage_settings["delete_grace_days"],
    )
    cache = CacheRegistry(
        storage_settings["cache_dir"],
        site_root=site_settings["root"],
        download_location=site_settings["download_location"],
        cache_location=site_settings["cache_location"],
        protected_pattern=settings["cache"]["protected_pattern"],
        files_repository=files,
    )
    deduplicator = ImageDeduplicator(storage, files, limit=settings["addons"]["image_dedup_limit"])
    addons = AddonService(
        permissions,
        storage,
        WebhookNotifier(),
        ActivityAuditLog(permissions),
        CatalogRegenerator(),
        cache,
        deduplicator=deduplicator,
        files_repository=files,
    )
    return {
        "permissions": permissions,
        "storage": storage,
        "cache": cache,
        "addons": addons,
    }


def create_app(test_config=None, settings=None):
    """
    Application factory

    Args:
        test_config: Flask config overrides (database URI, TESTING, ...)
        settings: settings overrides; when None they are read from settings.yaml
    """
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = ADDONDEPOT_DB
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    if test_config:
        app.config.update(test_config)
    if not app.config.get('SECRET_KEY'):
        app.config['SECRET_KEY'] = get_or_create_secret_key()

    if settings is None:
        settings = load_settings()
    else:
        settings = merge_settings(DEFAULT_SETTINGS, settings)
    app.config["ADDONDEPOT_SETTINGS"] = settings

    for key in ("upload_dir", "cache_dir"):
        os.makedirs(settings["storage"][key], exist_ok=True)

    # Initialize components
    db.init_app(app)
    migrate.init_app(app, db, directory=ALEMBIC_DIR)
    login_manager.init_app(app)

    init_db(app)

    services = build_services(settings)
    app.extensions["addondepot"] = services

    register_commands(app)

    jobs_settings = settings["jobs"]
    if jobs_settings["enabled"] and not app.config.get("TESTING"):
        scheduler = JobScheduler(
            services["storage"],
            services["cache"],
            delete_queue_minutes=jobs_settings["delete_queue_minutes"],
            stale_cache_hours=jobs_settings["stale_cache_hours"],
        )
        scheduler.init_app(app)
        services["scheduler"] = scheduler

    logger.info("app_created", database=app.config["SQLALCHEMY_DATABASE_URI"], jobs=jobs_settings["enabled"])
    return app
