"""
Repository for the per-type revision tables
"""

from collections import OrderedDict
from sqlalchemy import func
from db import db
from models.revisions import revision_model_for
from models.status import RevisionStatus
from repositories.base_repository import Repository


class RevisionsRepository:
    """Revision queries for one add-on type (one table per type)"""

    def __init__(self, addon_type):
        self.model = revision_model_for(addon_type)
        if self.model is None:
            raise ValueError(f"Unknown add-on type: {addon_type}")
        self.revisions = Repository(self.model)

    def upload_exists(self, upload_id):
        """True if a revision row already uses this upload identifier"""
        return self.revisions.exists(upload_id)

    def get_for_addon(self, addon_id):
        """Ordered mapping of revision number -> revision row"""
        rows = self.model.query.filter_by(addon_id=addon_id).order_by(self.model.revision.asc()).all()
        return OrderedDict((row.revision, row) for row in rows)

    def get_latest(self, addon_id):
        return (
            self.model.query.filter_by(addon_id=addon_id)
            .filter(self.model.status.op("&")(int(RevisionStatus.LATEST)) != 0)
            .order_by(self.model.revision.desc())
            .first()
        )

    def next_revision_number(self, addon_id):
        highest = db.session.query(func.max(self.model.revision)).filter(self.model.addon_id == addon_id).scalar()
        return (highest or 0) + 1

    def add(self, **kwargs):
        return self.revisions.add(**kwargs)

    def delete_for_addon(self, addon_id):
        """Stage removal of every revision row of an add-on (no commit)"""
        return self.model.query.filter_by(addon_id=addon_id).delete(synchronize_session=False)


