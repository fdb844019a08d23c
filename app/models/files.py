"""
Model: Files
"""

from db import db, now_utc
from constants import FILE_TYPES


class Files(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    # Nullable: freshly uploaded files are not yet attached to an add-on
    addon_id = db.Column(db.String(64), db.ForeignKey("addons.id", ondelete="SET NULL"), nullable=True)
    file_path = db.Column(db.String, nullable=False)  # Relative to the upload root
    file_type = db.Column(db.Enum(*FILE_TYPES, name="file_type"), nullable=False)
    approved = db.Column(db.Boolean, default=False)
    date_added = db.Column(db.DateTime, default=now_utc)
    delete_date = db.Column(db.DateTime, nullable=True, index=True)  # Set when queued for deletion

    __table_args__ = (
        # Composite index for the per-addon image/source lookups
        db.Index("idx_files_addon_type", "addon_id", "file_type"),
    )
