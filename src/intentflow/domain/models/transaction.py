from typing import Any

from pydantic import BaseModel, Field

from src.intentflow.domain.models.intent import ActionType
from src.intentflow.domain.models.task import TransactionStep


class TransactionRequest(BaseModel):
    """Input of the protocol transaction service."""

    account_address: str = Field(description="Account that will execute the bundle.")
    type: ActionType = Field(description="Kind of action to build.")
    protocol_address: str = Field(description="Resolved protocol contract address.")
    token_address: str = Field(description="Address of the token being spent.")
    amount: str = Field(description="Decimal quantity, in whole tokens.")
    token_decimals: int = Field(default=18, description="Decimals of the spent token.")


class TransactionBundle(BaseModel):
    transactions: list[TransactionStep] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class TransactionReceipt(BaseModel):
    transaction_hash: str
    status: int = Field(description="1 when the transaction succeeded, 0 when reverted.")
    block_number: int | None = None
    gas_used: int | None = None


class BuildRequest(BaseModel):
    text: str = Field(description="Free-text trading intent.")
    task_id: str | None = Field(
        default=None, description="Existing task to update in place, if any."
    )
