from enum import Enum

from pydantic import BaseModel, Field


class ActionType(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    SWAP = "SWAP"


class ParsedIntent(BaseModel):
    """Structured form of a free-text trading intent. Never persisted."""

    type: ActionType = Field(description="Action requested by the task text.")
    amount: str = Field(description="Decimal quantity exactly as written in the task.")
    source_token: str = Field(description="Symbol of the token being spent.")
    target: str | None = Field(
        default=None,
        description="Protocol name for deposit/withdraw, destination token for swap.",
    )
