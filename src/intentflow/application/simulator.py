from __future__ import annotations

import asyncio
import logging

import inject

from src.intentflow.domain.exceptions import SimulationError
from src.intentflow.domain.models.results import SimulationResult
from src.intentflow.domain.models.task import Task
from src.intentflow.domain.repositories import ChainClient, TaskRepository
from src.setup.chain_config import ChainSettings

logger = logging.getLogger(__name__)


class Simulator:
    """Dry-run a stored bundle with a gas estimate and a static call.

    Only the first step is simulated unless ``all_steps`` is set: later steps usually
    depend on state the earlier ones create (an approval before a deposit), so a static
    call against current state would report a false revert.
    """

    def __init__(
        self,
        repository: TaskRepository | None = None,
        chain: ChainClient | None = None,
        *,
        all_steps: bool | None = None,
    ) -> None:
        self._repository = repository or inject.instance(TaskRepository)
        self._chain = chain or inject.instance(ChainClient)
        if all_steps is None:
            all_steps = inject.instance(ChainSettings).SIMULATE_ALL_STEPS
        self._all_steps = all_steps

    async def simulate(self, task_id: str) -> SimulationResult:
        task = await self._repository.get_by_id(task_id)
        if task is None:
            return SimulationResult(
                task_id=task_id,
                ok=False,
                diagnosis=f"Transaction not found for task [id: {task_id}].",
            )
        if not task.steps:
            return SimulationResult(
                task_id=task_id,
                ok=False,
                diagnosis=f"Task [id: {task_id}] has no transaction steps to simulate.",
            )
        try:
            estimates = await self.simulate_task(task)
        except SimulationError as exc:
            logger.warning(
                "Simulation failed",
                extra={"task_id": task_id, "step": exc.step_index, "error": exc.detail},
            )
            return SimulationResult(
                task_id=task_id,
                ok=False,
                diagnosis=(
                    f"Failed to simulate transaction: {exc.detail}. "
                    "Please verify the protocol and amount."
                ),
            )
        return SimulationResult(task_id=task_id, ok=True, gas_estimates=estimates)

    async def simulate_many(self, task_ids: list[str]) -> list[SimulationResult]:
        """Simulate several tasks; a failure in one never hides the results of the others."""
        return list(await asyncio.gather(*(self._simulate_isolated(task_id) for task_id in task_ids)))

    async def _simulate_isolated(self, task_id: str) -> SimulationResult:
        try:
            return await self.simulate(task_id)
        except Exception as exc:
            logger.exception("Unexpected error simulating task", extra={"task_id": task_id})
            return SimulationResult(
                task_id=task_id,
                ok=False,
                diagnosis=f"Failed to simulate transaction: {exc!r}.",
            )

    async def simulate_task(self, task: Task) -> list[int]:
        """Return gas estimates per simulated step, raising ``SimulationError`` on revert."""
        sender = self._chain.account_address
        steps = task.steps if self._all_steps else task.steps[:1]
        estimates: list[int] = []
        for index, step in enumerate(steps):
            try:
                gas = await self._chain.estimate_gas(step, sender)
                await self._chain.call(step, sender)
            except Exception as exc:
                raise SimulationError(index, str(exc) or exc.__class__.__name__) from exc
            logger.debug("Simulated step", extra={"task_id": task.id, "step": index, "gas": gas})
            estimates.append(gas)
        return estimates
