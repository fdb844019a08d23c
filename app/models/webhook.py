"""
Model: Webhook
"""

import json
from db import db


class Webhook(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    url = db.Column(db.String(500), nullable=False)
    events = db.Column(db.Text)  # JSON list: ['moderator_notice', 'uploader_notice']
    secret = db.Column(db.String(100))
    active = db.Column(db.Boolean, default=True)

    def subscribed_to(self, event_type):
        return event_type in self.event_list()

    def event_list(self):
        return json.loads(self.events) if self.events else []
