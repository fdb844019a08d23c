"""
Services package

- slug_service.py         add-on id generation
- image_dedup_service.py  image reuse across revisions
- cache_service.py        cache registry
- addon_service.py        add-on store
- collaborators.py        default permission, storage, notifier, audit and catalog implementations
"""
