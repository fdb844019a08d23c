from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event
import json
import logging
from utils import now_utc

# Retrieve main logger
logger = logging.getLogger("main")

db = SQLAlchemy()
migrate = Migrate()


def log_activity(action_type, addon_id=None, user_id=None, **details):
    """Utility function to log activity"""
    from flask import has_app_context
    from models.activitylog import ActivityLog

    if not has_app_context():
        logger.debug(f"Skipping log_activity (no app context): {action_type}")
        return False

    try:
        log = ActivityLog(user_id=user_id, action_type=action_type, addon_id=addon_id, details=json.dumps(details))
        db.session.add(log)
        db.session.commit()
        return True
    except Exception as e:
        logger.error(f"Failed to log activity: {e}")
        db.session.rollback()
        return False


def init_db(app):
    # Register models on the metadata before creating tables
    import models  # noqa: F401

    with app.app_context():
        # Ensure foreign keys and WAL mode are set when connection is opened
        @event.listens_for(db.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            import sqlite3
            if not isinstance(dbapi_connection, sqlite3.Connection):
                return

            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON;")
            if app.config.get("SQLALCHEMY_DATABASE_URI", "") not in ("sqlite://", "sqlite:///:memory:"):
                # Enable WAL mode for better concurrent access
                cursor.execute("PRAGMA journal_mode=WAL;")
            # Increase timeout to 30 seconds to handle contention
            cursor.execute("PRAGMA busy_timeout=30000;")
            cursor.close()

        db.create_all()
        logger.info("Database tables initialized.")
