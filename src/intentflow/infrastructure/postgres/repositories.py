from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import delete, select

from src.intentflow.domain.exceptions import TaskNotFoundError
from src.intentflow.domain.models.task import Task
from src.intentflow.domain.repositories import TaskRepository
from src.intentflow.infrastructure.postgres.mappers import OrmMapper
from src.intentflow.infrastructure.postgres.orm import PostgresOrm, TaskRow


class PostgresTaskRepository(TaskRepository):
    """Postgres-backed task store using SQLAlchemy async sessions."""

    def __init__(self, orm: PostgresOrm) -> None:
        self._orm = orm

    async def create(self, task: Task) -> Task:
        """Persist a new task under a fresh id and return the stored record."""
        now = datetime.now(UTC)
        row = OrmMapper.to_task_row(uuid4().hex, task, created_at=now, updated_at=now)
        async with self._orm.session_factory() as session:
            async with session.begin():
                session.add(row)
        return OrmMapper.to_domain_task(row)

    async def update(self, task_id: str, task: Task) -> Task:
        """Replace the bundle and descriptive fields of an existing task."""
        async with self._orm.session_factory() as session:
            async with session.begin():
                row = await session.get(TaskRow, task_id)
                if row is None:
                    raise TaskNotFoundError(task_id)
                OrmMapper.apply_update(row, task, updated_at=datetime.now(UTC))
        return OrmMapper.to_domain_task(row)

    async def get_by_id(self, task_id: str) -> Task | None:
        async with self._orm.session_factory() as session:
            row = await session.get(TaskRow, task_id)
        if row is None:
            return None
        return OrmMapper.to_domain_task(row)

    async def list(self) -> list[Task]:
        async with self._orm.session_factory() as session:
            result = await session.execute(
                select(TaskRow).order_by(TaskRow.created_at, TaskRow.id)
            )
            rows = result.scalars().all()
        return [OrmMapper.to_domain_task(row) for row in rows]

    async def delete(self, task_id: str) -> bool:
        """Delete a task; deleting a missing id is not an error."""
        async with self._orm.session_factory() as session:
            async with session.begin():
                result = await session.execute(delete(TaskRow).where(TaskRow.id == task_id))
        return bool(result.rowcount)
