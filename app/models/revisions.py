"""
Models: per-type revision tables (karts_revs, tracks_revs, arenas_revs)
"""

from sqlalchemy.orm import declared_attr
from db import db, now_utc
from constants import ADDON_TYPE_KART, ADDON_TYPE_TRACK, ADDON_TYPE_ARENA
from models.status import RevisionStatus


class RevisionMixin:
    id = db.Column(db.String(64), primary_key=True)  # Upload identifier
    fileid = db.Column(db.Integer, nullable=False, default=0)  # files.id of the content archive
    revision = db.Column(db.Integer, nullable=False)
    format = db.Column(db.String(16))
    image = db.Column(db.Integer, default=0)
    moderator_note = db.Column(db.Text)
    status = db.Column(db.Integer, nullable=False, default=0)
    creation_date = db.Column(db.DateTime, default=now_utc)

    @declared_attr
    def addon_id(cls):
        return db.Column(
            db.String(64), db.ForeignKey("addons.id", ondelete="CASCADE"), nullable=False, index=True
        )

    @declared_attr
    def __table_args__(cls):
        return (db.UniqueConstraint("addon_id", "revision", name=f"uq_{cls.__tablename__}_addon_revision"),)

    @property
    def flags(self):
        return RevisionStatus(self.status or 0)

    @property
    def icon_id(self):
        return getattr(self, "icon", 0) or 0


class KartRevision(RevisionMixin, db.Model):
    __tablename__ = "karts_revs"

    icon = db.Column(db.Integer, default=0)


class TrackRevision(RevisionMixin, db.Model):
    __tablename__ = "tracks_revs"


class ArenaRevision(RevisionMixin, db.Model):
    __tablename__ = "arenas_revs"


REVISION_MODELS = {
    ADDON_TYPE_KART: KartRevision,
    ADDON_TYPE_TRACK: TrackRevision,
    ADDON_TYPE_ARENA: ArenaRevision,
}


def revision_model_for(addon_type):
    """Revision model class for an add-on type, or None for unknown types"""
    return REVISION_MODELS.get(addon_type)
