import logging
import hashlib
import os
from datetime import datetime, timezone

from markupsafe import Markup


# Custom logging formatter to support colors
class ColoredFormatter(logging.Formatter):
    # Define color codes
    COLORS = {
        'DEBUG': '\033[94m',   # Blue
        'INFO': '\033[92m',    # Green
        'WARNING': '\033[93m', # Yellow
        'ERROR': '\033[91m',   # Red
        'CRITICAL': '\033[95m' # Magenta
    }
    RESET = '\033[0m'  # Reset color

    def format(self, record):
        # Add color to the log level name
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        return super().format(record)


def strip_tags(text):
    """Remove HTML tags and comments and decode entities, line by line"""
    if not text:
        return ""
    return "\n".join(Markup(line).striptags() for line in text.split("\n"))


def normalize_newlines(text):
    if not text:
        return ""
    return text.replace('\r\n', '\n').replace('\r', '\n')


def file_md5(path, chunk_size=65536):
    """
    MD5 digest of a file on disk.

    Returns:
        str: hex digest, or None if the file cannot be read
    """
    if not path or not os.path.isfile(path):
        return None

    digest = hashlib.md5()
    try:
        with open(path, 'rb') as f:
            for chunk in iter(lambda: f.read(chunk_size), b''):
                digest.update(chunk)
    except OSError:
        return None
    return digest.hexdigest()


def now_utc():
    """Returns current datetime in UTC (aware)"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """
    Ensure a datetime object is aware and in UTC.
    Naive datetimes (as returned by SQLite) are assumed to be UTC.
    """
    if dt is None:
        return None

    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt.replace('Z', '+00:00'))
        except (ValueError, TypeError, AttributeError):
            return None

    if not hasattr(dt, 'tzinfo'):
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def get_or_create_secret_key(config_dir=None):
    """
    Load the persistent Flask session key from <config_dir>/.secret_key,
    generating it on first start.

    Returns:
        str: 64-character hex secret key
    """
    import secrets
    from constants import CONFIG_DIR

    logger = logging.getLogger('main')
    config_dir = config_dir or CONFIG_DIR
    secret_key_file = os.path.join(config_dir, '.secret_key')

    if os.path.exists(secret_key_file):
        try:
            with open(secret_key_file, 'r') as f:
                key = f.read().strip()
            if len(key) == 64:
                return key
            logger.warning("Invalid secret key found, generating new one")
        except OSError as e:
            logger.error(f"Error reading secret key: {e}")

    key = secrets.token_hex(32)

    try:
        os.makedirs(config_dir, exist_ok=True)
        with open(secret_key_file, 'w') as f:
            f.write(key)
        # Owner read/write only
        os.chmod(secret_key_file, 0o600)
        logger.info("Generated new secret key and saved to disk")
    except OSError as e:
        logger.error(f"Error saving secret key: {e}")
        logger.warning("Using non-persistent secret key")

    return key
