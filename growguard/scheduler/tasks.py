"""
Celery background tasks.
"""
from celery import Task

from growguard.core.risk_service import RiskService
from growguard.models import base
from growguard.scheduler.celery_app import app
from growguard.utils.logging import get_logger

logger = get_logger(__name__)


class DatabaseTask(Task):
    """Base task with database session management."""
    _db = None

    @property
    def db(self):
        if self._db is None:
            self._db = base.SessionLocal()
        return self._db

    def after_return(self, *args, **kwargs):
        if self._db is not None:
            self._db.close()
            self._db = None


@app.task(base=DatabaseTask, bind=True)
def monitor_portfolio_risk(self):
    """
    Periodic task: reassess every portfolio and report triggered alerts.
    Runs every RISK_MONITOR_INTERVAL_SECONDS.
    """
    logger.info("Starting risk monitoring")
    summary = RiskService(self.db).monitor_all()

    high_risk = [pid for pid, item in summary.items() if item.get('risk_level') == 'high']
    failed = [pid for pid, item in summary.items() if 'error' in item]
    if failed:
        logger.error("Risk monitoring skipped portfolios", portfolios=failed)
    if high_risk:
        logger.warning("High-risk portfolios detected", portfolios=high_risk)

    return summary
