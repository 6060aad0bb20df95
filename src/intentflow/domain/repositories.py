from __future__ import annotations

from typing import Protocol

from src.intentflow.domain.models.market import MarketSnapshot, PositionData, PositionQuery
from src.intentflow.domain.models.task import Task, TransactionStep
from src.intentflow.domain.models.transaction import (
    TransactionBundle,
    TransactionReceipt,
    TransactionRequest,
)


class TaskRepository(Protocol):
    """Repository contract for persisting pending task records."""

    async def create(self, task: Task) -> Task:
        """Store a new task and return it with its assigned id and ``created_at``."""

    async def update(self, task_id: str, task: Task) -> Task:
        """Replace the mutable fields of ``task_id``, preserving identity and ``created_at``."""

    async def get_by_id(self, task_id: str) -> Task | None:
        """Return the task, or ``None`` when it was executed or never existed."""

    async def list(self) -> list[Task]:
        """Return every pending task, oldest first."""

    async def delete(self, task_id: str) -> bool:
        """Delete a task; return ``False`` when it was already gone."""


class MarketDataProvider(Protocol):
    async def get_market_data(self, chain: str, token: str) -> MarketSnapshot:
        """Return yield opportunities for ``token`` on ``chain``, best APY first."""

    async def get_position_data(
        self,
        queries: list[PositionQuery],
        *,
        min_liquidity: float | None = None,
        min_apy: float | None = None,
        max_apy: float | None = None,
    ) -> list[PositionData]:
        """Return opportunities matching each protocol/token query."""


class ProtocolTransactionService(Protocol):
    def is_registered(self) -> bool:
        """Whether an executor identity is registered for building transactions."""

    async def build_transaction(self, request: TransactionRequest) -> TransactionBundle:
        """Return the ordered transaction steps that carry out ``request``."""

    async def index_transaction(self, transaction_hash: str) -> None:
        """Record an executed transaction hash with the service."""


class ChainClient(Protocol):
    @property
    def account_address(self) -> str:
        """Address of the account that signs submitted steps."""

    async def send_transaction(self, step: TransactionStep) -> str:
        """Sign and submit ``step``; return the transaction hash."""

    async def wait_for_receipt(self, transaction_hash: str, *, timeout: float) -> TransactionReceipt:
        """Block until the transaction is mined or ``timeout`` seconds elapse."""

    async def estimate_gas(self, step: TransactionStep, sender: str) -> int:
        """Estimate gas for ``step`` sent from ``sender``."""

    async def call(self, step: TransactionStep, sender: str) -> str:
        """Run ``step`` as a read-only call and return the hex encoded output."""


class ExecutionQueue(Protocol):
    async def enqueue(self, task_id: str) -> str:
        """Schedule execution of ``task_id`` on a worker and return the job id."""


class TaskRefiner(Protocol):
    async def refine(self, simulation_summary: str) -> str:
        """Rewrite task text given the outcome of a simulation run."""
