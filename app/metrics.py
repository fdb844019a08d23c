from prometheus_client import Counter, Histogram

# Add-on store metrics
addon_operations_total = Counter(
    "addondepot_addon_operations_total", "Add-on store operations", ["operation", "status"]
)

addon_operation_duration_seconds = Histogram(
    "addondepot_addon_operation_duration_seconds", "Add-on store operation duration", ["operation"]
)

image_dedup_total = Counter("addondepot_image_dedup_total", "Image deduplication checks", ["result"])

# Cache registry metrics
cache_lookups_total = Counter("addondepot_cache_lookups_total", "Cached image lookups", ["result"])

cache_files_removed_total = Counter(
    "addondepot_cache_files_removed_total", "Cache files removed from disk", ["scope"]
)

# Catalog metrics
catalog_regenerations_total = Counter(
    "addondepot_catalog_regenerations_total", "Catalog regeneration requests", ["catalog"]
)
