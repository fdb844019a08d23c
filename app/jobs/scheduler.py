"""
Background Jobs - deferred file deletion and cache pruning
"""
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime, timedelta
import logging

logger = logging.getLogger('main')


class JobScheduler:
    """Background job manager"""

    def __init__(self, storage, cache, delete_queue_minutes=60, stale_cache_hours=24):
        self.scheduler = BackgroundScheduler()
        self.storage = storage
        self.cache = cache
        self.delete_queue_minutes = delete_queue_minutes
        self.stale_cache_hours = stale_cache_hours
        self._jobs_registered = False

    def init_app(self, app):
        """Register the jobs for a Flask application and start the scheduler"""
        self._register_jobs(app)
        self.scheduler.start()
        logger.info("Job scheduler initialized")

    def _register_jobs(self, app):
        if self._jobs_registered:
            return

        self.scheduler.add_job(
            func=self.process_delete_queue,
            trigger=IntervalTrigger(minutes=self.delete_queue_minutes),
            id='process_delete_queue',
            name='Process file delete queue',
            args=[app]
        )

        # Offset from the delete queue so both never hit the database together
        self.scheduler.add_job(
            func=self.prune_cache,
            trigger=IntervalTrigger(hours=self.stale_cache_hours, start_date=datetime.now() + timedelta(minutes=5)),
            id='prune_cache',
            name='Prune stale cache entries',
            args=[app]
        )

        self._jobs_registered = True
        logger.info("Background jobs registered")

    def process_delete_queue(self, app):
        """Delete the files whose deferred deletion date has passed"""
        with app.app_context():
            deleted = self.storage.process_delete_queue()
        logger.info(f"Delete queue processed: {deleted} file(s) removed")
        return deleted

    def prune_cache(self, app):
        """Drop cache index rows whose file is gone"""
        with app.app_context():
            removed = self.cache.remove_stale_entries()
        logger.info(f"Cache pruned: {removed} stale entries removed")
        return removed

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Job scheduler shutdown")
