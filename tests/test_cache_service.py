"""
Tests for the cache registry
"""
import os
import pytest
from unittest.mock import patch
from sqlalchemy.exc import SQLAlchemyError

from constants import FILE_TYPE_IMAGE
from exceptions import DatabaseException
from repositories.cache_repository import CacheRepository
from services.cache_service import CacheRegistry, cache_prefix


@pytest.fixture
def addons(app, users):
    from db import db
    from models.addon import Addon
    for addon_id in ('speedway', 'oasis'):
        db.session.add(Addon(id=addon_id, type='tracks', name=addon_id.title(), uploader=users['uploader'].id))
    db.session.commit()


def write_cache_file(cache, path, addon_id=None):
    full_path = cache.full_path(path)
    os.makedirs(os.path.dirname(full_path), exist_ok=True)
    with open(full_path, 'wb') as f:
        f.write(b'cached')
    cache.create_file(path, addon_id, 'w=300,h=300')


class TestCreateFile:
    """Tests for CacheRegistry.create_file"""

    def test_indexes_file(self, cache, addons):
        assert cache.create_file('300--a.png', 'speedway', 'w=300')

        entries = cache.file_exists('300--a.png')
        assert [(e.file, e.addon, e.props) for e in entries] == [('300--a.png', 'speedway', 'w=300')]

    def test_unknown_addon_is_dropped(self, cache, addons):
        assert cache.create_file('300--a.png', 'nothing')
        assert cache.file_exists('300--a.png')[0].addon is None

    def test_database_failure(self, cache, addons):
        with patch.object(cache.entries, 'create', side_effect=SQLAlchemyError('locked')):
            assert cache.create_file('300--a.png') is False

    def test_addon_lookup_failure(self, cache, addons):
        with patch.object(cache.addons, 'exists', side_effect=SQLAlchemyError('locked')):
            assert cache.create_file('300--a.png', 'speedway') is False
        assert cache.file_exists('300--a.png') == []


class TestClear:
    """Tests for CacheRegistry.clear and clear_addon"""

    def test_clear_addon_only_touches_its_entries(self, cache, addons):
        write_cache_file(cache, '300--a.png', 'speedway')
        write_cache_file(cache, '300--b.png', 'oasis')
        write_cache_file(cache, 'graph.png')

        assert cache.clear_addon('speedway')

        assert cache.file_exists('300--a.png') == []
        assert not os.path.exists(cache.full_path('300--a.png'))
        assert cache.file_exists('300--b.png')
        assert cache.file_exists('graph.png')
        assert os.path.exists(cache.full_path('300--b.png'))

    def test_clear_addon_tolerates_missing_file(self, cache, addons):
        cache.create_file('300--gone.png', 'speedway')
        assert cache.clear_addon('speedway')
        assert cache.file_exists('300--gone.png') == []

    def test_clear_addon_unknown(self, cache, addons):
        write_cache_file(cache, '300--a.png', 'speedway')

        assert cache.clear_addon('nothing') is False
        assert cache.clear_addon(None) is False
        assert cache.file_exists('300--a.png')

    def test_clear_addon_lookup_failure(self, cache, addons):
        write_cache_file(cache, '300--a.png', 'speedway')

        with patch.object(cache.addons, 'exists', side_effect=SQLAlchemyError('locked')):
            assert cache.clear_addon('speedway') is False

        assert cache.file_exists('300--a.png')
        assert os.path.exists(cache.full_path('300--a.png'))

    def test_clear_keeps_protected_files(self, cache, addons):
        write_cache_file(cache, '300--a.png', 'speedway')
        write_cache_file(cache, 'sub/75--b.png')
        write_cache_file(cache, 'cache_graph_downloads.png')

        assert cache.clear()

        assert os.listdir(cache.cache_dir) == ['cache_graph_downloads.png']
        assert [e.file for e in CacheRepository().get_all()] == ['cache_graph_downloads.png']

    def test_clear_on_missing_folder(self, tmp_path, addons):
        cache = CacheRegistry(str(tmp_path / 'not-yet'))
        assert cache.clear()
        assert os.path.isdir(str(tmp_path / 'not-yet'))


class TestGetImage:
    """Tests for CacheRegistry.get_image"""

    def test_missing_record(self, cache, app):
        image = cache.get_image(42)
        assert image == {'url': '/image/notfound.png', 'approved': True, 'exists': False}

    def test_canonical_url(self, cache, make_file):
        record = make_file('images/a.png', b'png', FILE_TYPE_IMAGE)

        image = cache.get_image(record.id)

        assert image == {'url': '/dl/images/a.png', 'approved': False, 'exists': True}

    def test_cached_variant(self, cache, make_file, addons):
        record = make_file('images/a.png', b'png', FILE_TYPE_IMAGE)
        write_cache_file(cache, '300--a.png')

        assert cache.get_image(record.id, {'size': 'big'})['url'] == '/dl/cache/300--a.png'
        assert cache.get_image(record.id, {'size': 'small'})['url'] == '/dl/images/a.png'

    def test_database_failure(self, cache, app):
        with patch.object(cache.files, 'get_by_id', side_effect=SQLAlchemyError('locked')):
            with pytest.raises(DatabaseException):
                cache.get_image(1)

    @pytest.mark.parametrize('size,prefix', [('big', '300--'), ('medium', '75--'), ('small', '25--'), (None, None)])
    def test_cache_prefix(self, size, prefix):
        assert cache_prefix(size) == prefix


class TestRemoveStaleEntries:

    def test_rows_without_file_removed(self, cache, addons):
        write_cache_file(cache, '300--a.png', 'speedway')
        cache.create_file('300--gone.png', 'speedway')

        assert cache.remove_stale_entries() == 1
        assert [e.file for e in CacheRepository().get_all()] == ['300--a.png']
