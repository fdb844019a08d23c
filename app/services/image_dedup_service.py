"""
Image deduplication for new add-on revisions.

Uploaders tend to resend the same screenshot with every revision. Before a
revision references a freshly uploaded image, its MD5 is compared with the
images the add-on already owns; on a match the new upload is deleted and the
existing image is reused.
"""

import structlog
from metrics import image_dedup_total
from repositories.files_repository import FilesRepository
from utils import file_md5

logger = structlog.get_logger("image_dedup")

DEFAULT_DEDUP_LIMIT = 50


class ImageDeduplicator:
    def __init__(self, storage, files_repository=None, limit=DEFAULT_DEDUP_LIMIT):
        self.storage = storage
        self.files = files_repository or FilesRepository()
        self.limit = limit

    def image_hashes(self, addon_id):
        """Id, path and MD5 of the add-on's most recent images (at most `limit`)"""
        hashes = []
        for image in self.files.get_images(addon_id, limit=self.limit):
            hashes.append(
                {
                    "id": image.id,
                    "path": image.file_path,
                    "hash": file_md5(self.storage.full_path(image.file_path)),
                }
            )
        return hashes

    def dedupe(self, addon_id, image_id):
        """
        Look for an existing image identical to the uploaded one.

        Args:
            addon_id: add-on owning the images
            image_id: file record id of the freshly uploaded image

        Returns:
            int or None: id of the existing image to use instead (the upload
            has then been deleted), or None when the upload is kept
        """
        new_path = self.storage.path_for(image_id)
        if new_path is None:
            image_dedup_total.labels(result="missing").inc()
            return None

        new_hash = file_md5(self.storage.full_path(new_path))
        if new_hash is None:
            image_dedup_total.labels(result="missing").inc()
            return None

        for image in self.image_hashes(addon_id):
            # Skip the image that was just uploaded
            if image["id"] == image_id:
                continue

            if image["hash"] == new_hash:
                if not self.storage.delete(image_id):
                    logger.warning("duplicate_image_not_deleted", addon_id=addon_id, image_id=image_id)
                image_dedup_total.labels(result="duplicate").inc()
                logger.info("duplicate_image_reused", addon_id=addon_id, image_id=image_id, existing_id=image["id"])
                return image["id"]

        image_dedup_total.labels(result="unique").inc()
        return None
