"""
Cache registry: index of derived files stored below the cache root.

The `cache` table is advisory. A row only means something while its file is
still on disk, so callers treat a missing file as "not cached".
"""

import os
import re

import structlog
from sqlalchemy.exc import SQLAlchemyError

from constants import CACHE_SIZE_PREFIXES, NOT_FOUND_IMAGE
from exceptions import DatabaseException
from metrics import cache_lookups_total, cache_files_removed_total
from repositories.addons_repository import AddonsRepository
from repositories.cache_repository import CacheRepository
from repositories.files_repository import FilesRepository
from services.slug_service import clean_id

logger = structlog.get_logger("cache")

DEFAULT_PROTECTED_PATTERN = r"^(cache_graph_.*\.png)$"


def cache_prefix(size):
    """Filename prefix of a size variant, None for the canonical image"""
    if not size:
        return None
    return CACHE_SIZE_PREFIXES.get(size)


class CacheRegistry:
    def __init__(
        self,
        cache_dir,
        site_root="/",
        download_location="/dl/",
        cache_location="/dl/cache/",
        protected_pattern=DEFAULT_PROTECTED_PATTERN,
        cache_repository=None,
        addons_repository=None,
        files_repository=None,
    ):
        self.cache_dir = cache_dir
        self.site_root = site_root
        self.download_location = download_location
        self.cache_location = cache_location
        self.protected = re.compile(protected_pattern, re.IGNORECASE)
        self.entries = cache_repository or CacheRepository()
        self.addons = addons_repository or AddonsRepository()
        self.files = files_repository or FilesRepository()

    def is_protected(self, path):
        return bool(self.protected.match(os.path.basename(path)))

    def full_path(self, path):
        return os.path.join(self.cache_dir, path)

    def create_file(self, path, addon_id=None, props=None):
        """
        Add an index row for a cache file.

        Args:
            path: relative to the cache root
            addon_id: associated add-on, stored only if that add-on exists
            props: file properties (e.g. "w=300,h=300")
        """
        addon_id = clean_id(addon_id)
        try:
            if addon_id and not self.addons.exists(addon_id):
                addon_id = None
            self.entries.create(path, addon_id=addon_id, props=props)
            return True
        except SQLAlchemyError as e:
            logger.error("cache_create_failed", path=path, error=str(e))
            return False

    def file_exists(self, path):
        """Index rows for a path; an empty list means the file is not cached"""
        try:
            return self.entries.get_by_path(path)
        except SQLAlchemyError as e:
            logger.error("cache_lookup_failed", path=path, error=str(e))
            return []

    def get_image(self, file_id, props=None):
        """
        URL of an image, preferring a cached size variant.

        Returns:
            dict: url, approved, exists. A missing file record yields the
            "not found" placeholder so rendering never blocks.
        """
        props = props or {}
        try:
            record = self.files.get_by_id(file_id) if file_id else None
        except SQLAlchemyError as e:
            logger.error("image_lookup_failed", file_id=file_id, error=str(e))
            raise DatabaseException("Failed to look up image file.")

        if record is None:
            cache_lookups_total.labels(result="not_found").inc()
            return {"url": self.site_root + NOT_FOUND_IMAGE, "approved": True, "exists": False}

        image = {
            "url": self.download_location + record.file_path,
            "approved": bool(record.approved),
            "exists": True,
        }

        prefix = cache_prefix(props.get("size"))
        if prefix:
            derived = prefix + os.path.basename(record.file_path)
            if self.file_exists(derived):
                image["url"] = self.cache_location + derived
                cache_lookups_total.labels(result="hit").inc()
            else:
                cache_lookups_total.labels(result="miss").inc()

        return image

    def clear(self):
        """Empty the cache folder and index, leaving protected files in place"""
        removed = self._purge_directory(self.cache_dir)
        os.makedirs(self.cache_dir, exist_ok=True)
        cache_files_removed_total.labels(scope="all").inc(removed)

        try:
            paths = [entry.file for entry in self.entries.get_all() if not self.is_protected(entry.file)]
            self.entries.delete_paths(paths)
        except SQLAlchemyError as e:
            logger.error("cache_clear_failed", error=str(e))
            return False

        logger.info("cache_cleared", files_removed=removed, rows_removed=len(paths))
        return True

    def clear_addon(self, addon_id):
        """
        Remove the cache files of one add-on.

        Returns False without touching anything when the id does not name an
        existing add-on.
        """
        addon_id = clean_id(addon_id)
        if not addon_id:
            return False

        try:
            if not self.addons.exists(addon_id):
                return False
            entries = self.entries.get_by_addon(addon_id)
            for entry in entries:
                self._remove_file(entry.file)
            self.entries.delete_paths([entry.file for entry in entries])
        except SQLAlchemyError as e:
            logger.error("cache_clear_addon_failed", addon_id=addon_id, error=str(e))
            return False

        cache_files_removed_total.labels(scope="addon").inc(len(entries))
        logger.info("cache_cleared_for_addon", addon_id=addon_id, entries=len(entries))
        return True

    def remove_stale_entries(self):
        """Drop index rows whose file is gone. Returns how many rows were removed."""
        try:
            stale = [entry.file for entry in self.entries.get_all() if not os.path.isfile(self.full_path(entry.file))]
            self.entries.delete_paths(stale)
        except SQLAlchemyError as e:
            logger.error("cache_prune_failed", error=str(e))
            return 0

        if stale:
            logger.info("cache_stale_entries_removed", count=len(stale))
        return len(stale)

    def _remove_file(self, path):
        full_path = self.full_path(path)
        try:
            os.remove(full_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("cache_file_remove_failed", path=path, error=str(e))

    def _purge_directory(self, directory):
        """Recursively delete everything below `directory` except protected files"""
        removed = 0
        if not os.path.isdir(directory):
            return removed

        for name in os.listdir(directory):
            full_path = os.path.join(directory, name)
            if os.path.isdir(full_path) and not os.path.islink(full_path):
                removed += self._purge_directory(full_path)
                if not os.listdir(full_path):
                    os.rmdir(full_path)
                continue
            if self.protected.match(name):
                continue
            try:
                os.remove(full_path)
                removed += 1
            except OSError as e:
                logger.warning("cache_file_remove_failed", path=full_path, error=str(e))
        return removed
