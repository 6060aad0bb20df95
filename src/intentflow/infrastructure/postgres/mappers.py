from __future__ import annotations

from datetime import UTC, datetime

from src.intentflow.domain.models.task import Task, TokenDescriptor, TransactionStep
from src.intentflow.infrastructure.postgres.orm import TaskRow


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back; stored values are always UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class OrmMapper:
    @staticmethod
    def to_task_row(task_id: str, task: Task, *, created_at: datetime, updated_at: datetime) -> TaskRow:
        return TaskRow(
            id=task_id,
            description=task.description,
            steps=[step.model_dump() for step in task.steps],
            from_token=task.from_token.model_dump(),
            to_token=task.to_token.model_dump(),
            from_amount=task.from_amount,
            output_amount=task.output_amount,
            created_at=created_at,
            updated_at=updated_at,
        )

    @staticmethod
    def apply_update(row: TaskRow, task: Task, *, updated_at: datetime) -> None:
        """Replace every mutable column; ``id`` and ``created_at`` are left alone."""
        row.description = task.description
        row.steps = [step.model_dump() for step in task.steps]
        row.from_token = task.from_token.model_dump()
        row.to_token = task.to_token.model_dump()
        row.from_amount = task.from_amount
        row.output_amount = task.output_amount
        row.updated_at = updated_at

    @staticmethod
    def to_domain_task(row: TaskRow) -> Task:
        return Task(
            id=row.id,
            description=row.description,
            steps=[TransactionStep.model_validate(step) for step in row.steps or []],
            from_token=TokenDescriptor.model_validate(row.from_token),
            to_token=TokenDescriptor.model_validate(row.to_token),
            from_amount=row.from_amount,
            output_amount=row.output_amount,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )
