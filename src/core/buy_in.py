"""Buy-in text parsing (core domain).

Accepted forms:
- a bare decimal number, read as USDC ("0.5")
- a decimal with a "$" or "USDC" token, before or after ("0.5 USDC", "0.5$", "$0.5")
- the phrase "no buy-in" in any casing ("no buyin" and "no buy in" too)

Any other currency token ("5 ETH"), a negative number, or free text parses
to ``Invalid``. Minimum-amount policy is applied by the executor, not here.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from core.models import Amount, BuyInSpec, Invalid, NoBuyIn

USDC = "USDC"

_NO_BUY_IN = re.compile(r"\bno[\s-]*buy[\s-]*in\b", re.IGNORECASE)
_EXACT_NO_BUY_IN = re.compile(r"^no[\s-]*buy[\s-]*in[.!]*$", re.IGNORECASE)
_EXACT_AMOUNT = re.compile(
    r"^\$?\s*(?P<number>\d+(?:\.\d+)?|\.\d+)\s*(?P<token>\$|[a-z]+)?[.!]*$",
    re.IGNORECASE,
)
_EMBEDDED_AMOUNT = re.compile(
    r"(?<![\w.])\$?\s*(?P<number>\d+(?:\.\d+)?|\.\d+)(?:\s*(?P<token>\$|[a-z]+))?",
    re.IGNORECASE,
)

# Words that may follow an amount in a sentence without being a currency.
_FILLER_TOKENS = {"buy", "buyin", "buy-in", "each", "per", "for", "to", "and", "please", "pls"}


def _to_decimal(number: str) -> Optional[Decimal]:
    try:
        value = Decimal(number)
    except InvalidOperation:
        return None
    if value < 0 or not value.is_finite():
        return None
    return value


def _amount_from(number: str, token: Optional[str], raw: str) -> BuyInSpec:
    value = _to_decimal(number)
    if value is None:
        return Invalid(raw)
    if token is None or token == "$" or token.upper() == USDC:
        return Amount(value)
    return Invalid(raw)


def parse_buy_in(text: str) -> BuyInSpec:
    """Parse a complete buy-in answer such as a reply to the clarification prompt."""

    raw = text.strip()
    if _EXACT_NO_BUY_IN.match(raw):
        return NoBuyIn()

    match = _EXACT_AMOUNT.match(raw)
    if not match:
        return Invalid(raw)
    return _amount_from(match.group("number"), match.group("token"), raw)


def find_buy_in(text: str) -> Optional[BuyInSpec]:
    """Look for a buy-in inside a longer request, e.g. "start a game for 2 usdc".

    Returns ``None`` when the text mentions no amount at all.
    """

    if _NO_BUY_IN.search(text):
        return NoBuyIn()

    match = _EMBEDDED_AMOUNT.search(text)
    if not match:
        return None

    token = match.group("token")
    if token and token.lower() in _FILLER_TOKENS:
        token = None
    raw = match.group(0).strip()
    return _amount_from(match.group("number"), token, raw)


def is_buy_in_answer(spec: BuyInSpec) -> bool:
    return isinstance(spec, (Amount, NoBuyIn))


def format_bet_amount(spec: BuyInSpec) -> str:
    """Render the amount sent to the game server; "no buy-in" is "0"."""

    if isinstance(spec, Amount):
        return format_decimal(spec.value)
    return "0"


def format_decimal(value: Decimal) -> str:
    normalized = value.normalize()
    return format(normalized, "f")
