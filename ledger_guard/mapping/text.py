"""
Description text helpers.

normalize_description() is the single normalization used wherever a
description serves as a lookup key, so history lookups are exact on the
normalized text and never fuzzy.
"""

import re
from decimal import Decimal
from typing import Optional

from ledger_guard.models.mapping import TransactionIndicators


CAPITALIZATION_THRESHOLD = Decimal("1000")

STOP_WORDS = frozenset({"the", "and", "for", "with"})

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")

_RECURRING = re.compile(r"monthly|weekly|annual|recurring")
_CORRECTION = re.compile(r"correction|adjust|reverse")
_REFUND = re.compile(r"refund|return|credit")
_CAPITAL = re.compile(r"purchase|acquire|buy")


def normalize_description(description: Optional[str]) -> str:
    """Lower-case, strip non-alphanumerics, collapse whitespace."""
    if not description:
        return ""
    text = _NON_ALPHANUMERIC.sub("", description.lower())
    return _WHITESPACE.sub(" ", text).strip()


def extract_keywords(description: Optional[str]) -> list[str]:
    """Words longer than two characters, stop words removed, in order."""
    return [
        word for word in normalize_description(description).split(" ")
        if len(word) > 2 and word not in STOP_WORDS
    ]


def detect_indicators(
    description: Optional[str],
    amount: Optional[Decimal] = None,
) -> TransactionIndicators:
    """
    Cheap signals from the description.

    A capital expense needs both purchase wording and an amount above
    the capitalization threshold.
    """
    text = normalize_description(description)
    return TransactionIndicators(
        is_recurring=bool(_RECURRING.search(text)),
        is_correction=bool(_CORRECTION.search(text)),
        is_refund=bool(_REFUND.search(text)),
        is_capital_expense=(
            bool(_CAPITAL.search(text))
            and amount is not None
            and abs(amount) > CAPITALIZATION_THRESHOLD
        ),
    )


def code_pattern(code: str) -> re.Pattern:
    """Matches the code as a whole word, not embedded in a longer token."""
    return re.compile(rf"\b{re.escape(code)}\b", re.IGNORECASE)
