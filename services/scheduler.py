"""
Background Job Scheduler - periodic maintenance tasks in a daemon thread.

Currently runs:
- hourly cleanup of password reset tokens that expired more than a day ago
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, Callable, Mapping

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler = None

TOKEN_CLEANUP_INTERVAL_SECONDS = 60 * 60


class BackgroundScheduler:
    """Interval-based scheduler polling its job table from one thread."""

    def __init__(self, poll_seconds: int = 10):
        self.jobs: Dict[str, Dict] = {}
        self.running = False
        self.poll_seconds = poll_seconds
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()

    def add_job(self, job_id: str, func: Callable, interval_seconds: int,
                run_immediately: bool = False, kwargs: Dict = None):
        """
        Register (or replace) a job.

        Args:
            job_id: Unique identifier for the job
            func: Function to call
            interval_seconds: Seconds between runs
            run_immediately: Run on the first poll instead of after one interval
            kwargs: Keyword arguments passed to func
        """
        first_run = datetime.utcnow()
        if not run_immediately:
            first_run += timedelta(seconds=interval_seconds)
        with self._lock:
            self.jobs[job_id] = {
                'func': func,
                'interval': interval_seconds,
                'kwargs': kwargs or {},
                'last_run': None,
                'next_run': first_run,
                'run_count': 0,
                'last_error': None
            }
        logger.info(f"Added job '{job_id}' with interval {interval_seconds}s")

    def remove_job(self, job_id: str):
        with self._lock:
            if self.jobs.pop(job_id, None) is not None:
                logger.info(f"Removed job '{job_id}'")

    def get_job_status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                job_id: {
                    'interval': job['interval'],
                    'last_run': job['last_run'].isoformat() if job['last_run'] else None,
                    'next_run': job['next_run'].isoformat() if job['next_run'] else None,
                    'run_count': job['run_count'],
                    'last_error': job['last_error']
                }
                for job_id, job in self.jobs.items()
            }

    def start(self):
        if self.running:
            logger.warning("Scheduler is already running")
            return

        self.running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name='crm-scheduler', daemon=True)
        self._thread.start()
        logger.info("Background scheduler started")

    def stop(self):
        self.running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
        logger.info("Background scheduler stopped")

    def _execute(self, job_id: str, job: Dict, now: datetime) -> bool:
        """Run one job; a failing job is logged and rescheduled, never fatal."""
        try:
            logger.debug(f"Running job '{job_id}'")
            job['func'](**job['kwargs'])
        except Exception as e:
            logger.error(f"Job '{job_id}' failed: {e}")
            with self._lock:
                job['last_error'] = str(e)
                job['next_run'] = now + timedelta(seconds=job['interval'])
            return False

        with self._lock:
            job['last_run'] = now
            job['next_run'] = now + timedelta(seconds=job['interval'])
            job['run_count'] += 1
            job['last_error'] = None
        return True

    def _run_loop(self):
        while self.running and not self._stop_event.is_set():
            now = datetime.utcnow()
            with self._lock:
                due = [(job_id, job) for job_id, job in self.jobs.items()
                       if job['next_run'] and now >= job['next_run']]

            for job_id, job in due:
                self._execute(job_id, job, now)

            self._stop_event.wait(timeout=self.poll_seconds)

    def run_job_now(self, job_id: str) -> bool:
        """Trigger a job immediately, outside its schedule."""
        with self._lock:
            job = self.jobs.get(job_id)
        if job is None:
            return False
        return self._execute(job_id, job, datetime.utcnow())


def get_scheduler() -> BackgroundScheduler:
    """Get or create the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler()
    return _scheduler


# =============================================================================
# SCHEDULED JOBS
# =============================================================================

def cleanup_expired_tokens_job(config: Mapping = None):
    """Delete password reset tokens that expired more than 24 hours ago."""
    from database.connection import get_db_session
    from services.password_reset_service import PasswordResetService

    with get_db_session() as session:
        deleted = PasswordResetService(session, config=config or {}).cleanup_expired_tokens()
    logger.debug(f"Token cleanup finished ({deleted} removed)")


def init_scheduler(config: Mapping = None) -> BackgroundScheduler:
    """Register the maintenance jobs and start the scheduler thread."""
    scheduler = get_scheduler()
    scheduler.add_job(
        'cleanup_expired_tokens',
        cleanup_expired_tokens_job,
        interval_seconds=TOKEN_CLEANUP_INTERVAL_SECONDS,
        run_immediately=True,
        kwargs={'config': config}
    )
    scheduler.start()
    logger.info("Scheduler initialized with maintenance jobs")
    return scheduler
