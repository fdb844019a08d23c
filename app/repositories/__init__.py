"""
Repositories package

Each repository encapsulates database operations for one aggregate and
composes the generic `Repository[ModelT]` from base_repository.py:
- addons_repository.py
- revisions_repository.py
- files_repository.py
- cache_repository.py

Usage:
    from repositories.files_repository import FilesRepository
    images = FilesRepository().get_images(addon_id, limit=50)
"""
