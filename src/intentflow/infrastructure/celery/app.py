from celery import Celery

from src.setup.celery_config import get_celery_settings

_settings = get_celery_settings()

celery_app = Celery(
    "intentflow",
    broker=_settings.REDIS_URL,
    backend=_settings.REDIS_URL,
    include=["src.intentflow.worker.tasks.execute_task"],
)

celery_app.conf.update(
    task_ignore_result=False,
    result_expires=_settings.RESULT_TTL_SECONDS,
    task_acks_late=False,
    worker_prefetch_multiplier=_settings.WORKER_PREFETCH_MULTIPLIER,
    task_time_limit=_settings.EXECUTION_TIME_LIMIT_SECONDS,
    task_routes={"execute_task": {"queue": _settings.EXECUTION_QUEUE}},
)
