"""
Model: Addon
"""

from db import db, now_utc


class Addon(db.Model):
    __tablename__ = "addons"

    id = db.Column(db.String(64), primary_key=True)  # Cleaned slug, never changes
    type = db.Column(db.String(16), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    uploader = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    creation_date = db.Column(db.DateTime, default=now_utc)
    designer = db.Column(db.String(255))
    description = db.Column(db.Text, default="")
    license = db.Column(db.Text, default="")
    min_include_ver = db.Column(db.String(16))
    max_include_ver = db.Column(db.String(16))
    image = db.Column(db.Integer, default=0)  # files.id of the latest revision image
    icon = db.Column(db.Integer, default=0)  # karts only

    __table_args__ = (db.Index("idx_addons_type_name", "type", "name"),)
