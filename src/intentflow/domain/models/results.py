from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from src.intentflow.domain.models.task import TransactionStep


class BuiltTask(BaseModel):
    task_id: str = Field(description="Identifier of the stored task.")
    description: str = Field(description="Task text the bundle was built from.")
    steps: list[TransactionStep] = Field(description="Ordered transaction bundle.")
    created_at: datetime | None = None


class BuildFailure(BaseModel):
    index: int = Field(description="Position of the failed item in the request.")
    description: str
    reason: str


class BuildBatchResult(BaseModel):
    """Positional results of a batch build; ``None`` marks an item that failed."""

    results: list[BuiltTask | None] = Field(default_factory=list)
    failures: list[BuildFailure] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[BuiltTask]:
        return [item for item in self.results if item is not None]

    @property
    def all_failed(self) -> bool:
        return not self.succeeded

    @property
    def partially_failed(self) -> bool:
        return bool(self.failures) and bool(self.succeeded)

    def message(self) -> str | None:
        if self.all_failed:
            return "No transactions could be built, please rewrite the tasks."
        if self.failures:
            return "Some transactions failed to build, please rewrite the tasks."
        return None


class SimulationResult(BaseModel):
    task_id: str
    ok: bool
    diagnosis: str | None = Field(
        default=None, description="Human readable reason the simulation failed."
    )
    gas_estimates: list[int] = Field(default_factory=list)


class SimulationReport(BaseModel):
    results: list[SimulationResult] = Field(default_factory=list)
    summary: str = ""
    refined: str | None = Field(
        default=None, description="Rewritten task text proposed by the refiner."
    )

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.results)


class ExecutionResult(BaseModel):
    success: bool
    task_id: str | None = None
    description: str | None = None
    hashes: list[str] = Field(
        default_factory=list, description="Confirmed hashes, in step order."
    )
    reason: str | None = None
    failed_at: datetime | None = None
    failed_step: int | None = Field(
        default=None, description="Index of the step that stopped execution."
    )
    finished_at: datetime | None = None

    @property
    def message(self) -> str:
        if self.success:
            stamp = self.finished_at.isoformat() if self.finished_at else ""
            return (
                f'[{stamp}] Transaction executed successfully for task: "{self.description}". '
                f"Transaction hashes: {', '.join(self.hashes)}"
            )
        stamp = self.failed_at.isoformat() if self.failed_at else ""
        if self.description is None:
            return f"[{stamp}] {self.reason}"
        return (
            f'[{stamp}] Transaction errored for task: "{self.description}". '
            f"The error is: {self.reason}"
        )
