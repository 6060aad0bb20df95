import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from src.intentflow.application.services import PipelineService
from src.intentflow.infrastructure.celery.app import celery_app
from src.setup.app_config import configure_di

logger = logging.getLogger(__name__)

# DI-bound clients (database engine, HTTP pools) belong to the loop that created them,
# so the worker process keeps a single loop across task runs.
_loop: asyncio.AbstractEventLoop | None = None


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop.run_until_complete(coro)


@celery_app.task(name="execute_task", bind=True, max_retries=0)
def execute_task(self, task_id: str) -> dict:
    """
    Run every step of a stored task on the worker.
    Never retried: a failed run leaves the task stored for a fresh rebuild/execute cycle.
    """
    configure_di()
    service = PipelineService()
    result = _run(service.execute(task_id))
    logger.info(
        "Execution finished",
        extra={"task_id": task_id, "job_id": self.request.id, "success": result.success},
    )
    return result.model_dump(mode="json")
