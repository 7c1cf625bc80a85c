"""Line-oriented price rewriting and tier marker filtering (core domain).

Each line goes through three steps in a fixed order:
1) tier check: retail-only lines are blanked, wholesale lines are kept
2) marker strip: wholesale markers are removed from kept lines
3) price rewrite: every price token is multiplied and re-emitted

The blank-line layout of the whole body is tidied afterwards.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional, Tuple

from core.config import TransformConfig

_CURRENCY = r"R\$|\$\$?"
_AMOUNT = r"\d+(?:[.,]\d{2})?"

# Alternatives are tried left to right, so a prefixed symbol wins over a
# suffixed one and both win over a bare amount at the same position. A
# suffixed symbol followed by digits belongs to the next prefixed price.
PRICE_PATTERN = re.compile(
    rf"(?P<prefix_symbol>{_CURRENCY})\s*(?P<prefix_amount>{_AMOUNT})"
    rf"|\b(?P<suffix_amount>{_AMOUNT})\s*(?P<suffix_symbol>{_CURRENCY})(?![\s$]*\d)"
    r"|\b(?P<bare_amount>\d+[.,]\d{2})\b",
    re.IGNORECASE,
)

_LINE_BREAK = re.compile(r"\r?\n")
_CENTS = Decimal("0.01")


class Tier(str, Enum):
    NONE = "none"
    WHOLESALE = "wholesale"
    RETAIL_ONLY = "retail_only"


@dataclass(frozen=True)
class LineResult:
    """What happened to one input line."""

    original: str
    text: str
    tier: Tier
    prices_rewritten: int = 0

    @property
    def dropped(self) -> bool:
        return self.tier is Tier.RETAIL_ONLY


@dataclass(frozen=True)
class TransformedBody:
    """Rewritten message body, line by line."""

    lines: Tuple[LineResult, ...]
    text: str

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def prices_rewritten(self) -> int:
        return sum(line.prices_rewritten for line in self.lines)


def _marker_pattern(marker: str) -> "re.Pattern[str]":
    return re.compile(re.escape(marker.strip()), re.IGNORECASE)


def _strip_pattern(marker: str) -> "re.Pattern[str]":
    return re.compile(rf"\s*-?\s*{re.escape(marker.strip())}\s*:?\s*", re.IGNORECASE)


def classify_tier(line: str, config: TransformConfig) -> Tier:
    """Return the tier of a line; wholesale wins when both markers appear."""

    if _marker_pattern(config.wholesale_marker).search(line):
        return Tier.WHOLESALE
    if _marker_pattern(config.retail_marker).search(line):
        return Tier.RETAIL_ONLY
    return Tier.NONE


def strip_marker(line: str, marker: str) -> str:
    """Remove every marker occurrence, with its optional dash and colon."""

    return _strip_pattern(marker).sub(" ", line).strip()


def parse_amount(raw: str) -> Optional[Decimal]:
    """Parse an amount using comma or period as the decimal separator."""

    try:
        return Decimal(raw.replace(",", ".", 1))
    except InvalidOperation:
        return None


def format_amount(value: Decimal, currency_symbol: str = "R$") -> str:
    """Format to two decimals with a comma separator, e.g. ``R$135,00``."""

    quantized = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    return currency_symbol + format(quantized, ".2f").replace(".", ",")


def _amount_from_match(match: "re.Match[str]") -> Optional[str]:
    return match.group("prefix_amount") or match.group("suffix_amount") or match.group("bare_amount")


def rewrite_prices(line: str, multiplier: float, currency_symbol: str = "R$") -> Tuple[str, int]:
    """Multiply every price token in a line.

    Returns the new line and the number of tokens rewritten. Tokens whose
    amount does not parse or is not positive are left untouched.
    """

    factor = Decimal(str(multiplier))
    rewritten = 0

    def _replace(match: "re.Match[str]") -> str:
        nonlocal rewritten
        raw = _amount_from_match(match)
        amount = parse_amount(raw) if raw else None
        if amount is None or amount <= 0:
            return match.group(0)
        rewritten += 1
        return format_amount(amount * factor, currency_symbol)

    return PRICE_PATTERN.sub(_replace, line), rewritten


def transform_line(line: str, config: TransformConfig) -> LineResult:
    """Run one line through tier check, marker strip and price rewrite."""

    tier = classify_tier(line, config)
    if tier is Tier.RETAIL_ONLY:
        # Blank rather than delete, to keep the paragraph spacing.
        return LineResult(original=line, text="", tier=tier)

    text = line
    if tier is Tier.WHOLESALE:
        text = strip_marker(text, config.wholesale_marker)

    text, count = rewrite_prices(text, config.price_multiplier, config.currency_symbol)
    return LineResult(original=line, text=text, tier=tier, prices_rewritten=count)


def tidy_blank_lines(lines: List[str]) -> List[str]:
    """Collapse runs of blank lines to one and drop blank edges."""

    tidied: List[str] = []
    run: List[str] = []
    for line in lines:
        if not line.strip():
            run.append(line)
            continue
        if run:
            tidied.extend(run if len(run) == 1 else [""])
            run = []
        tidied.append(line)
    if run:
        tidied.extend(run if len(run) == 1 else [""])

    start = 0
    while start < len(tidied) and not tidied[start].strip():
        start += 1
    end = len(tidied)
    while end > start and not tidied[end - 1].strip():
        end -= 1
    return tidied[start:end]


def transform(body: Optional[str], config: TransformConfig) -> TransformedBody:
    """Rewrite a whole message body; the result text may be empty."""

    if not body:
        return TransformedBody(lines=(), text="")

    results = tuple(transform_line(line, config) for line in _LINE_BREAK.split(body))
    text = "\n".join(tidy_blank_lines([result.text for result in results]))
    return TransformedBody(lines=results, text=text)
