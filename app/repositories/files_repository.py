"""
Repository for Files database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from db import db
from models.files import Files
from constants import FILE_TYPE_IMAGE, FILE_TYPE_SOURCE
from repositories.base_repository import Repository


class FilesRepository:
    """Repository for Files database operations"""

    def __init__(self):
        self.files = Repository(Files)

    def get_by_id(self, file_id):
        return self.files.get_by_id(file_id)

    def create(self, **kwargs):
        return self.files.create(**kwargs)

    def update(self, file_id, **kwargs):
        return self.files.update(file_id, **kwargs)

    def delete(self, file_id):
        return self.files.delete(file_id)

    def get_by_addon(self, addon_id, file_type=None, limit=None):
        query = Files.query.filter(Files.addon_id == addon_id)
        if file_type:
            query = query.filter(Files.file_type == file_type)
        query = query.order_by(Files.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def get_images(self, addon_id, limit=None):
        return self.get_by_addon(addon_id, FILE_TYPE_IMAGE, limit=limit)

    def get_sources(self, addon_id):
        return self.get_by_addon(addon_id, FILE_TYPE_SOURCE)

    def attach_to_addon(self, file_ids, addon_id):
        """Stage association of unattached file records with an add-on (no commit)"""
        ids = [file_id for file_id in file_ids if file_id]
        if not ids:
            return 0
        return (
            Files.query.filter(Files.id.in_(ids))
            .filter(Files.addon_id.is_(None))
            .update({Files.addon_id: addon_id}, synchronize_session=False)
        )

    def delete_by_addon(self, addon_id):
        """Delete every file record of an add-on"""
        try:
            deleted = Files.query.filter(Files.addon_id == addon_id).delete(synchronize_session=False)
            db.session.commit()
            return deleted
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    def get_due_for_deletion(self, now):
        return Files.query.filter(Files.delete_date.isnot(None)).filter(Files.delete_date <= now).all()
