import os

APP_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(APP_DIR, 'data')
CONFIG_DIR = os.path.join(APP_DIR, 'config')
DB_FILE = os.path.join(CONFIG_DIR, 'addondepot.db')
CONFIG_FILE = os.path.join(CONFIG_DIR, 'settings.yaml')
UPLOAD_DIR = os.path.join(DATA_DIR, 'uploads')
CACHE_DIR = os.path.join(DATA_DIR, 'cache')
ALEMBIC_DIR = os.path.join(APP_DIR, 'migrations')

ADDONDEPOT_DB = 'sqlite:///' + DB_FILE

# Add-on types, also used as the revision table prefix ("karts_revs", ...)
ADDON_TYPE_KART = 'karts'
ADDON_TYPE_TRACK = 'tracks'
ADDON_TYPE_ARENA = 'arenas'

ALLOWED_ADDON_TYPES = [
    ADDON_TYPE_KART,
    ADDON_TYPE_TRACK,
    ADDON_TYPE_ARENA,
]

FILE_TYPE_IMAGE = 'image'
FILE_TYPE_SOURCE = 'source'
FILE_TYPE_CONTENT = 'content'

FILE_TYPES = [
    FILE_TYPE_IMAGE,
    FILE_TYPE_SOURCE,
    FILE_TYPE_CONTENT,
]

PERM_EDIT_ADDONS = 'edit_addons'

# Size variants served from the cache, prefixed to the canonical basename
CACHE_SIZE_PREFIXES = {
    'big': '300--',
    'medium': '75--',
    'small': '25--',
}

NOT_FOUND_IMAGE = 'image/notfound.png'

VERSION_STRING_PATTERN = r'^(svn|\d+\.\d+\.\d+(-rc\d+)?)$'

DEFAULT_SETTINGS = {
    "site": {
        "root": "/",
        "download_location": "/dl/",
        "cache_location": "/dl/cache/",
    },
    "storage": {
        "upload_dir": UPLOAD_DIR,
        "cache_dir": CACHE_DIR,
        "delete_grace_days": 1,
    },
    "addons": {
        "image_dedup_limit": 50,
    },
    "cache": {
        "protected_pattern": r"^(cache_graph_.*\.png)$",
    },
    "jobs": {
        "enabled": False,
        "delete_queue_minutes": 60,
        "stale_cache_hours": 24,
    },
}

WEBHOOK_EVENT_MODERATOR_NOTICE = 'moderator_notice'
WEBHOOK_EVENT_UPLOADER_NOTICE = 'uploader_notice'
