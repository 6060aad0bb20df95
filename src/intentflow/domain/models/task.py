import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

_ADDRESS_PATTERN = re.compile(r"0x[0-9a-fA-F]{40}")


def is_address(value: str | None) -> bool:
    """Return True when ``value`` is a 0x-prefixed, 20-byte hex string."""
    return bool(value) and _ADDRESS_PATTERN.fullmatch(value) is not None


class TransactionStep(BaseModel):
    to: str = Field(description="Destination contract address.")
    data: str = Field(default="0x", description="Hex encoded call data.")
    value: str = Field(default="0", description="Native value in wei, as a decimal string.")
    operation: int = Field(default=0, description="0 for call, 1 for delegatecall.")

    @field_validator("to")
    @classmethod
    def _check_to(cls, value: str) -> str:
        if not is_address(value):
            raise ValueError(f"{value!r} is not an on-chain address")
        return value

    @field_validator("data")
    @classmethod
    def _check_data(cls, value: str) -> str:
        if not value.startswith("0x"):
            raise ValueError("call data must be 0x-prefixed hex")
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: object) -> str:
        if value is None or value == "":
            return "0"
        text = str(value)
        if text.startswith("0x"):
            return str(int(text, 16))
        if not text.isdigit():
            raise ValueError(f"step value {text!r} is not an integer amount of wei")
        return text


class TokenDescriptor(BaseModel):
    symbol: str = Field(description="Token or protocol symbol used for display.")
    decimals: int | None = Field(default=None, description="Token decimals, when known.")
    address: str | None = Field(default=None, description="Token address, when known.")


class Task(BaseModel):
    id: str | None = Field(default=None, description="Identifier assigned by the task store.")
    description: str = Field(description="Original free-text intent.")
    steps: list[TransactionStep] = Field(
        default_factory=list, description="Ordered transaction bundle."
    )
    from_token: TokenDescriptor = Field(description="Token being spent.")
    to_token: TokenDescriptor = Field(description="Protocol or token being received.")
    from_amount: str = Field(description="Decimal quantity being spent.")
    output_amount: str | None = Field(
        default=None, description="Decimal quantity expected back, once known."
    )
    created_at: datetime | None = Field(
        default=None, description="Set by the task store on creation."
    )
    updated_at: datetime | None = Field(
        default=None, description="Set by the task store on every write."
    )
