"""
Model: CacheEntry
Index of derived files (resized images, graphs) stored below the cache root.
"""

from db import db


class CacheEntry(db.Model):
    __tablename__ = "cache"

    file = db.Column(db.String(255), primary_key=True)  # Relative to the cache root
    addon = db.Column(db.String(64), db.ForeignKey("addons.id", ondelete="SET NULL"), nullable=True, index=True)
    props = db.Column(db.String(255), nullable=True)  # e.g. "w=300,h=300"
