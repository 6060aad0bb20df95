from __future__ import annotations

import asyncio

from celery import Celery

from src.intentflow.domain.repositories import ExecutionQueue

EXECUTE_TASK = "execute_task"


class CeleryExecutionQueue(ExecutionQueue):
    """Hands task execution over to a Celery worker."""

    def __init__(self, celery_app_instance: Celery, queue: str | None = None) -> None:
        self._celery_app = celery_app_instance
        self._queue = queue

    async def enqueue(self, task_id: str) -> str:
        """
        Enqueue execution of a stored task and return the Celery job id.
        """
        async_result = await asyncio.to_thread(
            self._celery_app.send_task,
            EXECUTE_TASK,
            args=[task_id],
            queue=self._queue,
        )
        return async_result.id
