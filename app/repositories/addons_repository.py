"""
Repository for Addon database operations
"""

from sqlalchemy import or_
from db import db
from models.addon import Addon
from models.revisions import revision_model_for
from models.status import RevisionStatus
from repositories.base_repository import Repository


class AddonsRepository:
    """Repository for Addon database operations"""

    def __init__(self):
        self.addons = Repository(Addon)

    def get_by_id(self, addon_id):
        return self.addons.get_by_id(addon_id)

    def exists(self, addon_id):
        return self.addons.exists(addon_id)

    def add(self, **kwargs):
        return self.addons.add(**kwargs)

    def search(self, search_query, search_description=True):
        """Add-ons whose name (and optionally description) contains the query"""
        escaped = search_query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        condition = Addon.name.ilike(pattern, escape="\\")
        if search_description:
            condition = or_(condition, Addon.description.ilike(pattern, escape="\\"))
        return Addon.query.filter(condition).order_by(Addon.name, Addon.id).all()

    def list_ids_by_type(self, addon_type, featured_first=False):
        """Ids of add-ons of a type that have a revision flagged LATEST"""
        revision_model = revision_model_for(addon_type)
        if revision_model is None:
            return []

        featured = revision_model.status.op("&")(int(RevisionStatus.FEATURED))
        query = (
            db.session.query(Addon.id)
            .join(revision_model, revision_model.addon_id == Addon.id)
            .filter(Addon.type == addon_type)
            .filter(revision_model.status.op("&")(int(RevisionStatus.LATEST)) != 0)
        )
        if featured_first:
            query = query.order_by(featured.desc(), Addon.name.asc(), Addon.id.asc())
        else:
            query = query.order_by(Addon.name.asc(), Addon.id.asc())

        return [row.id for row in query.all()]
