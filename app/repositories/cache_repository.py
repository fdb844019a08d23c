"""
Repository for CacheEntry database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from db import db
from models.cache import CacheEntry
from repositories.base_repository import Repository


class CacheRepository:
    """Repository for CacheEntry database operations"""

    def __init__(self):
        self.entries = Repository(CacheEntry)

    def get_all(self):
        return self.entries.get_all()

    def get_by_path(self, path):
        return CacheEntry.query.filter(CacheEntry.file == path).all()

    def get_by_addon(self, addon_id):
        return CacheEntry.query.filter(CacheEntry.addon == addon_id).all()

    def create(self, path, addon_id=None, props=None):
        return self.entries.create(file=path, addon=addon_id, props=props)

    def delete_paths(self, paths):
        """Delete the index rows for the given paths in one transaction"""
        if not paths:
            return 0
        try:
            deleted = CacheEntry.query.filter(CacheEntry.file.in_(list(paths))).delete(synchronize_session=False)
            db.session.commit()
            return deleted
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    def count(self):
        return self.entries.count()
