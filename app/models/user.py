"""
Model: User
"""

from db import db
from flask_login import UserMixin
from constants import PERM_EDIT_ADDONS


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user = db.Column(db.String(100), unique=True)
    email = db.Column(db.String(255))
    password = db.Column(db.String(255))
    admin_access = db.Column(db.Boolean, default=False)
    edit_addons_access = db.Column(db.Boolean, default=False)

    def has_admin_access(self):
        return bool(self.admin_access)

    def has_edit_addons_access(self):
        return bool(self.edit_addons_access) or self.has_admin_access()

    def has_access(self, access):
        if access == "admin":
            return self.has_admin_access()
        elif access == PERM_EDIT_ADDONS:
            return self.has_edit_addons_access()
        return False
