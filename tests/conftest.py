from __future__ import annotations

from datetime import UTC, datetime

import pytest

from src.intentflow.domain.exceptions import TaskNotFoundError
from src.intentflow.domain.models.market import (
    MarketSnapshot,
    PositionData,
    PositionQuery,
    YieldOpportunity,
)
from src.intentflow.domain.models.task import Task, TokenDescriptor, TransactionStep
from src.intentflow.domain.models.transaction import (
    TransactionBundle,
    TransactionReceipt,
    TransactionRequest,
)
from src.intentflow.domain.repositories import (
    ChainClient,
    MarketDataProvider,
    ProtocolTransactionService,
    TaskRepository,
)
from src.setup.chains import get_chain_config

ACCOUNT = "0x1111111111111111111111111111111111111111"
AAVE_POOL = "0xA238Dd80C259a72e81d7e4664a9801593F98d1c5"
SPENDER = "0x2222222222222222222222222222222222222222"


def make_step(to: str = SPENDER, data: str = "0x095ea7b3") -> TransactionStep:
    return TransactionStep(to=to, data=data, value="0", operation=0)


class InMemoryTaskRepository(TaskRepository):
    """Dictionary-backed task store for tests."""

    def __init__(self) -> None:
        self.tasks: dict[str, Task] = {}
        self.delete_calls: list[str] = []
        self._counter = 0

    async def create(self, task: Task) -> Task:
        self._counter += 1
        now = datetime.now(UTC)
        stored = task.model_copy(
            update={"id": f"task-{self._counter}", "created_at": now, "updated_at": now}
        )
        self.tasks[stored.id] = stored
        return stored

    async def update(self, task_id: str, task: Task) -> Task:
        existing = self.tasks.get(task_id)
        if existing is None:
            raise TaskNotFoundError(task_id)
        stored = task.model_copy(
            update={
                "id": task_id,
                "created_at": existing.created_at,
                "updated_at": datetime.now(UTC),
            }
        )
        self.tasks[task_id] = stored
        return stored

    async def get_by_id(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    async def list(self) -> list[Task]:
        return list(self.tasks.values())

    async def delete(self, task_id: str) -> bool:
        self.delete_calls.append(task_id)
        return self.tasks.pop(task_id, None) is not None


class StubMarketData(MarketDataProvider):
    def __init__(self, opportunities: list[YieldOpportunity] | None = None) -> None:
        self.opportunities = opportunities if opportunities is not None else []
        self.market_calls: list[tuple[str, str]] = []
        self.position_calls: list[list[PositionQuery]] = []

    async def get_market_data(self, chain: str, token: str) -> MarketSnapshot:
        self.market_calls.append((chain, token))
        return MarketSnapshot(tokens=list(self.opportunities))

    async def get_position_data(
        self,
        queries: list[PositionQuery],
        *,
        min_liquidity: float | None = None,
        min_apy: float | None = None,
        max_apy: float | None = None,
    ) -> list[PositionData]:
        self.position_calls.append(queries)
        return [
            PositionData(
                protocol=query.protocol,
                token=query.token,
                data=[
                    item
                    for item in self.opportunities
                    if query.protocol.lower() in item.name.lower()
                ],
            )
            for query in queries
        ]


class StubTransactionService(ProtocolTransactionService):
    """Returns an approve-then-deposit bundle unless told otherwise."""

    def __init__(self, steps: list[TransactionStep] | None = None) -> None:
        self.steps = steps if steps is not None else [
            make_step(data="0x095ea7b3"),
            make_step(to=AAVE_POOL, data="0x617ba037"),
        ]
        self.requests: list[TransactionRequest] = []
        self.indexed: list[str] = []

    def is_registered(self) -> bool:
        return True

    async def build_transaction(self, request: TransactionRequest) -> TransactionBundle:
        self.requests.append(request)
        return TransactionBundle(transactions=list(self.steps))

    async def index_transaction(self, transaction_hash: str) -> None:
        self.indexed.append(transaction_hash)


class StubChainClient(ChainClient):
    """Records every chain interaction in ``events`` in the order it happened."""

    def __init__(
        self,
        *,
        fail_send_at: int | None = None,
        revert_at: int | None = None,
        fail_simulation: bool = False,
    ) -> None:
        self.events: list[tuple[str, int]] = []
        self.fail_send_at = fail_send_at
        self.revert_at = revert_at
        self.fail_simulation = fail_simulation
        self.timeouts: list[float] = []
        self._sent = 0

    @property
    def account_address(self) -> str:
        return ACCOUNT

    async def send_transaction(self, step: TransactionStep) -> str:
        index = self._sent
        self._sent += 1
        self.events.append(("send", index))
        if self.fail_send_at == index:
            raise RuntimeError("insufficient funds for gas")
        return f"0x{index:064x}"

    async def wait_for_receipt(self, transaction_hash: str, *, timeout: float) -> TransactionReceipt:
        index = int(transaction_hash, 16)
        self.events.append(("receipt", index))
        self.timeouts.append(timeout)
        status = 0 if self.revert_at == index else 1
        return TransactionReceipt(transaction_hash=transaction_hash, status=status, block_number=1)

    async def estimate_gas(self, step: TransactionStep, sender: str) -> int:
        self.events.append(("estimate", 0))
        if self.fail_simulation:
            raise RuntimeError("execution reverted: ERC20: transfer amount exceeds balance")
        return 21_000

    async def call(self, step: TransactionStep, sender: str) -> str:
        self.events.append(("call", 0))
        return "0x"


@pytest.fixture
def chain_config():
    return get_chain_config(8453)


@pytest.fixture
def repository() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture
def market() -> StubMarketData:
    return StubMarketData(
        [
            YieldOpportunity(name="Aave USDC", address=AAVE_POOL, apy=4.2, volume_7d="1000000"),
            YieldOpportunity(name="Compound USDC", address="compound-v3", apy=3.1),
            YieldOpportunity(name="Morpho USDC", address="morpho", apy=6.0),
        ]
    )


@pytest.fixture
def transactions() -> StubTransactionService:
    return StubTransactionService()


@pytest.fixture
def chain() -> StubChainClient:
    return StubChainClient()


def make_task(steps: list[TransactionStep] | None = None) -> Task:
    return Task(
        description="Deposit 100 USDC into Aave",
        steps=steps if steps is not None else [make_step(), make_step(to=AAVE_POOL), make_step()],
        from_token=TokenDescriptor(symbol="USDC", decimals=6),
        to_token=TokenDescriptor(symbol="Aave", decimals=18),
        from_amount="100",
    )
