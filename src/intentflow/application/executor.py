from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

import inject

from src.intentflow.domain.exceptions import ExecutionError
from src.intentflow.domain.models.results import ExecutionResult
from src.intentflow.domain.models.task import Task, TransactionStep
from src.intentflow.domain.repositories import (
    ChainClient,
    ProtocolTransactionService,
    TaskRepository,
)
from src.setup.chain_config import ChainSettings

logger = logging.getLogger(__name__)


@dataclass
class StepAccumulator:
    confirmed_hashes: list[str] = field(default_factory=list)
    failed_at: int | None = None
    error: ExecutionError | None = None

    @property
    def failed(self) -> bool:
        return self.failed_at is not None


class Executor:
    """Submit the steps of a stored task in order, stopping at the first failure.

    A task is deleted only after every step confirms. On failure the record is left
    untouched so a caller can rebuild or retry the bundle from its first step.
    """

    def __init__(
        self,
        repository: TaskRepository | None = None,
        chain: ChainClient | None = None,
        transactions: ProtocolTransactionService | None = None,
        *,
        receipt_timeout: float | None = None,
        index_transactions: bool | None = None,
    ) -> None:
        self._repository = repository or inject.instance(TaskRepository)
        self._chain = chain or inject.instance(ChainClient)
        self._transactions = transactions
        if receipt_timeout is None or index_transactions is None:
            settings = inject.instance(ChainSettings)
            if receipt_timeout is None:
                receipt_timeout = settings.RECEIPT_TIMEOUT_SECONDS
            if index_transactions is None:
                index_transactions = settings.INDEX_EXECUTED_TRANSACTIONS
        self._receipt_timeout = receipt_timeout
        self._index_transactions = index_transactions
        self._in_flight: set[str] = set()

    async def execute(self, task_id: str, *, index_transactions: bool | None = None) -> ExecutionResult:
        if task_id in self._in_flight:
            return ExecutionResult(
                success=False,
                task_id=task_id,
                reason=f"Task [id: {task_id}] is already being executed.",
                failed_at=datetime.now(UTC),
            )

        index = self._index_transactions if index_transactions is None else index_transactions
        self._in_flight.add(task_id)
        try:
            task = await self._repository.get_by_id(task_id)
            if task is None:
                logger.info("Task not found for execution", extra={"task_id": task_id})
                return ExecutionResult(
                    success=False,
                    task_id=task_id,
                    reason=f"Transaction not found for task [id: {task_id}].",
                    failed_at=datetime.now(UTC),
                )
            accumulator = await self._run_steps(task, index)
        finally:
            self._in_flight.discard(task_id)

        if accumulator.failed:
            logger.warning(
                "Task execution stopped",
                extra={
                    "task_id": task_id,
                    "step": accumulator.failed_at,
                    "error": str(accumulator.error),
                },
            )
            return ExecutionResult(
                success=False,
                task_id=task_id,
                description=task.description,
                hashes=accumulator.confirmed_hashes,
                reason=str(accumulator.error),
                failed_at=datetime.now(UTC),
                failed_step=accumulator.failed_at,
            )

        try:
            if not await self._repository.delete(task_id):
                logger.info("Executed task was already deleted", extra={"task_id": task_id})
        except Exception:
            # The bundle is on-chain already; the leftover record must not hide the hashes.
            logger.exception("Failed to delete executed task", extra={"task_id": task_id})
        return ExecutionResult(
            success=True,
            task_id=task_id,
            description=task.description,
            hashes=accumulator.confirmed_hashes,
            finished_at=datetime.now(UTC),
        )

    async def _run_steps(self, task: Task, index_transactions: bool) -> StepAccumulator:
        accumulator = StepAccumulator()
        if not task.steps:
            accumulator.failed_at = 0
            accumulator.error = ExecutionError("Task has no transaction steps.", step_index=0)
            return accumulator

        for position, step in enumerate(task.steps):
            try:
                tx_hash = await self._submit(position, step)
            except ExecutionError as exc:
                accumulator.failed_at = position
                accumulator.error = exc
                break
            accumulator.confirmed_hashes.append(tx_hash)
            if index_transactions:
                await self._index(tx_hash)
        return accumulator

    async def _submit(self, position: int, step: TransactionStep) -> str:
        """Send one step and block until its receipt confirms it."""
        tx_hash: str | None = None
        try:
            tx_hash = await self._chain.send_transaction(step)
            logger.info("Transaction sent", extra={"step": position, "tx_hash": tx_hash})
            receipt = await self._chain.wait_for_receipt(tx_hash, timeout=self._receipt_timeout)
        except ExecutionError as exc:
            if exc.step_index is None:
                exc.step_index = position
            raise
        except Exception as exc:
            raise ExecutionError(
                str(exc) or exc.__class__.__name__, step_index=position, tx_hash=tx_hash
            ) from exc

        if receipt.status != 1:
            raise ExecutionError(
                f"Transaction {receipt.transaction_hash} reverted",
                step_index=position,
                tx_hash=receipt.transaction_hash,
            )
        logger.info(
            "Transaction confirmed",
            extra={"step": position, "tx_hash": receipt.transaction_hash},
        )
        return receipt.transaction_hash

    async def _index(self, tx_hash: str) -> None:
        if self._transactions is None:
            self._transactions = inject.instance(ProtocolTransactionService)
        try:
            await self._transactions.index_transaction(tx_hash)
        except Exception:
            logger.warning("Failed to index transaction", extra={"tx_hash": tx_hash}, exc_info=True)
