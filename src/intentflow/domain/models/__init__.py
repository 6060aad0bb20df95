from src.intentflow.domain.models.intent import ActionType, ParsedIntent
from src.intentflow.domain.models.market import (
    MarketSnapshot,
    PositionData,
    PositionQuery,
    YieldOpportunity,
)
from src.intentflow.domain.models.results import (
    BuildBatchResult,
    BuildFailure,
    BuiltTask,
    ExecutionResult,
    SimulationReport,
    SimulationResult,
)
from src.intentflow.domain.models.task import Task, TokenDescriptor, TransactionStep, is_address
from src.intentflow.domain.models.transaction import (
    BuildRequest,
    TransactionBundle,
    TransactionReceipt,
    TransactionRequest,
)

__all__ = [
    "ActionType",
    "ParsedIntent",
    "Task",
    "TokenDescriptor",
    "TransactionStep",
    "is_address",
    "YieldOpportunity",
    "MarketSnapshot",
    "PositionQuery",
    "PositionData",
    "TransactionRequest",
    "BuildRequest",
    "TransactionBundle",
    "TransactionReceipt",
    "BuiltTask",
    "BuildFailure",
    "BuildBatchResult",
    "SimulationResult",
    "SimulationReport",
    "ExecutionResult",
]
