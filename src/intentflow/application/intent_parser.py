from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from src.intentflow.domain.exceptions import ParseError
from src.intentflow.domain.models.intent import ActionType, ParsedIntent

# Ordered verb rules; the first verb that prefixes the text wins.
_VERB_RULES: tuple[tuple[str, ActionType], ...] = (
    ("deposit", ActionType.DEPOSIT),
    ("withdraw", ActionType.WITHDRAW),
    ("swap", ActionType.SWAP),
)

_INTENT_PATTERN = re.compile(
    r"^\s*(?P<verb>[A-Za-z]+)\s+"
    r"(?P<amount>\d+(?:\.\d+)?)\s+"
    r"(?P<token>[A-Za-z][A-Za-z0-9.]*)"
    r"(?:\s+(?:for|into|from)\s+(?P<target>[A-Za-z0-9][\w.\-]*))?"
    r"(?=\s|$)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ParseOutcome:
    """Tagged parse result: exactly one of ``intent`` or ``error`` is set."""

    intent: ParsedIntent | None = None
    error: ParseError | None = None

    @property
    def ok(self) -> bool:
        return self.intent is not None

    def unwrap(self) -> ParsedIntent:
        if self.intent is None:
            raise self.error or ParseError("", "no intent parsed")
        return self.intent


def _action_for(verb: str) -> ActionType | None:
    lowered = verb.lower()
    for name, action in _VERB_RULES:
        if lowered == name:
            return action
    return None


def parse_intent(text: str) -> ParseOutcome:
    """Parse ``"<Verb> <amount> <token> [for|into|from <target>]"``."""
    match = _INTENT_PATTERN.match(text)
    if match is None:
        return ParseOutcome(error=ParseError(text, "expected '<verb> <amount> <token>'"))

    action = _action_for(match.group("verb"))
    if action is None:
        return ParseOutcome(
            error=ParseError(text, f"unknown action {match.group('verb')!r}")
        )

    amount = match.group("amount")
    try:
        if Decimal(amount) <= 0:
            return ParseOutcome(error=ParseError(text, "amount must be positive"))
    except InvalidOperation:
        return ParseOutcome(error=ParseError(text, f"invalid amount {amount!r}"))

    return ParseOutcome(
        intent=ParsedIntent(
            type=action,
            amount=amount,
            source_token=match.group("token"),
            target=match.group("target"),
        )
    )


class IntentParser:
    def parse(self, text: str) -> ParseOutcome:
        return parse_intent(text)
