"""
Pytest fixtures and configuration for AddonDepot tests
"""
import itertools
import os
import sys
import pytest
from unittest.mock import MagicMock

# Add app directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'app'))

from constants import PERM_EDIT_ADDONS, FILE_TYPE_CONTENT, FILE_TYPE_IMAGE


class FakePermissions:
    """Permission service whose session user is set by the test"""

    def __init__(self):
        self.user_id = None
        self.user_name = None
        self.permissions = set()

    def login(self, user):
        self.user_id = user.id
        self.user_name = user.user
        self.permissions = {PERM_EDIT_ADDONS} if user.has_access(PERM_EDIT_ADDONS) else set()

    def logout(self):
        self.user_id = None
        self.user_name = None
        self.permissions = set()

    def is_logged_in(self):
        return self.user_id is not None

    def current_user_id(self):
        return self.user_id

    def current_user_name(self):
        return self.user_name

    def has_permission(self, permission=PERM_EDIT_ADDONS):
        return permission in self.permissions


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing"""
    logger = MagicMock()
    logger.info = MagicMock()
    logger.error = MagicMock()
    logger.warning = MagicMock()
    logger.debug = MagicMock()
    return logger


@pytest.fixture
def storage_dirs(tmp_path):
    """Temporary upload and cache roots"""
    upload_dir = tmp_path / 'uploads'
    cache_dir = tmp_path / 'cache'
    upload_dir.mkdir()
    cache_dir.mkdir()
    return {'upload_dir': str(upload_dir), 'cache_dir': str(cache_dir)}


@pytest.fixture
def app(storage_dirs):
    """Application on an in-memory SQLite database"""
    from app import create_app
    from db import db

    _app = create_app(
        test_config={
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite://',
            'SECRET_KEY': 'test-secret-key',
        },
        settings={'storage': dict(storage_dirs, delete_grace_days=1)},
    )

    with _app.app_context():
        yield _app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def users(app):
    """An uploader, a moderator and an unrelated user"""
    from db import db
    from models.user import User

    seeded = {
        'uploader': User(user='uploader', email='uploader@example.com', password='x'),
        'moderator': User(user='moderator', email='moderator@example.com', password='x', edit_addons_access=True),
        'other': User(user='other', email='other@example.com', password='x'),
    }
    db.session.add_all(seeded.values())
    db.session.commit()
    return seeded


@pytest.fixture
def permissions():
    return FakePermissions()


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def audit():
    return MagicMock()


@pytest.fixture
def catalog():
    return MagicMock()


@pytest.fixture
def storage(app, storage_dirs):
    from services.collaborators import LocalFileStorage
    return LocalFileStorage(storage_dirs['upload_dir'])


@pytest.fixture
def cache(app, storage_dirs):
    from services.cache_service import CacheRegistry
    return CacheRegistry(storage_dirs['cache_dir'])


@pytest.fixture
def addon_service(permissions, storage, notifier, audit, catalog, cache):
    from services.addon_service import AddonService
    return AddonService(permissions, storage, notifier, audit, catalog, cache)


@pytest.fixture
def make_file(app, storage_dirs):
    """Write a file below the upload root and register it in the files table"""
    from repositories.files_repository import FilesRepository
    files = FilesRepository()

    def _make_file(path, content=b'data', file_type=FILE_TYPE_CONTENT, addon_id=None):
        full_path = os.path.join(storage_dirs['upload_dir'], path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, 'wb') as f:
            f.write(content)
        return files.create(file_path=path, file_type=file_type, addon_id=addon_id)

    return _make_file


@pytest.fixture
def upload(make_file):
    """AddonAttributes of a freshly uploaded archive (and optional image)"""
    from services.addon_service import AddonAttributes
    counter = itertools.count(1)

    def _upload(name='Speedway', status=0, image_content=None, license='GPL-3.0', **kwargs):
        n = next(counter)
        content = make_file(f'archives/{n}.zip', b'archive %d' % n, FILE_TYPE_CONTENT)
        image_id = 0
        if image_content is not None:
            image_id = make_file(f'images/{n}.png', image_content, FILE_TYPE_IMAGE).id
        return AddonAttributes(
            name=name,
            file_id=content.id,
            version='6',
            status=int(status),
            image=image_id,
            license=license,
            **kwargs
        )

    return _upload
