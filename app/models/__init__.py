"""
Models package

One module per table family:
- addon.py      (addons)
- revisions.py  (karts_revs, tracks_revs, arenas_revs)
- files.py      (files)
- cache.py      (cache)
- user.py, activitylog.py, webhook.py
"""

from .user import User
from .addon import Addon
from .revisions import KartRevision, TrackRevision, ArenaRevision, REVISION_MODELS, revision_model_for
from .files import Files
from .cache import CacheEntry
from .activitylog import ActivityLog
from .webhook import Webhook
from .status import RevisionStatus

__all__ = [
    "User",
    "Addon",
    "KartRevision",
    "TrackRevision",
    "ArenaRevision",
    "REVISION_MODELS",
    "revision_model_for",
    "Files",
    "CacheEntry",
    "ActivityLog",
    "Webhook",
    "RevisionStatus",
]
