"""
Celery application configuration.
"""
from celery import Celery
from config.settings import get_settings

settings = get_settings()

# Create Celery app
app = Celery(
    'growguard',
    broker=f'redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/0',
    backend=f'redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/0',
    include=['growguard.scheduler.tasks']
)

# Celery configuration
app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='Asia/Shanghai',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

# Schedule configuration
app.conf.beat_schedule = {
    'monitor-portfolio-risk': {
        'task': 'growguard.scheduler.tasks.monitor_portfolio_risk',
        'schedule': float(settings.RISK_MONITOR_INTERVAL_SECONDS),
    },
}

if __name__ == '__main__':
    app.start()
