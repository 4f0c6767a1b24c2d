"""
Transaction Classification

Assigns a transaction to a category and derives the debit/credit account
targets from it.

DESIGN DECISION: Categories are data, not code.
Each category lists its keywords, its account targets, an optional
capitalization threshold and declarative context rules. Adding a
category means adding an entry to DEFAULT_CATEGORIES.
"""

import re
from decimal import Decimal
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ledger_guard.mapping.text import (
    CAPITALIZATION_THRESHOLD,
    detect_indicators,
    normalize_description,
)
from ledger_guard.models.account import AccountSubtype, AccountType
from ledger_guard.models.mapping import (
    CONFIDENCE_CEILING,
    AccountTarget,
    CategoryMatch,
    TransactionIndicators,
)


HIGH_VALUE_THRESHOLD = Decimal("5000")

KEYWORD_BONUS = 0.05
KEYWORD_BONUS_CAP = 0.2
THRESHOLD_SCORE_BONUS = 0.5
THRESHOLD_CONFIDENCE_BONUS = 0.1
DEFAULT_CONFIDENCE = 0.3

CAPITALIZED_TARGET = AccountTarget(
    type=AccountType.ASSET,
    subtype=AccountSubtype.NON_CURRENT_ASSET,
)
DEFAULT_DEBIT_TARGET = AccountTarget(
    type=AccountType.EXPENSE,
    subtype=AccountSubtype.OPERATING_EXPENSE,
)
DEFAULT_CREDIT_TARGET = AccountTarget(
    type=AccountType.LIABILITY,
    subtype=AccountSubtype.CURRENT_LIABILITY,
)


class ContextRule(BaseModel):
    """
    A signed confidence adjustment applied when its condition holds.

    The condition is an amount floor (strictly above), an indicator flag,
    or both; a rule with neither never applies.
    """
    model_config = ConfigDict(frozen=True)

    reason: str
    adjustment: float
    amount_above: Optional[Decimal] = None
    indicator: Optional[str] = Field(
        default=None,
        description="Name of a TransactionIndicators flag"
    )

    def applies(self, amount: Optional[Decimal], indicators: TransactionIndicators) -> bool:
        if self.amount_above is None and self.indicator is None:
            return False
        if self.amount_above is not None:
            if amount is None or abs(amount) <= self.amount_above:
                return False
        if self.indicator is not None and not getattr(indicators, self.indicator):
            return False
        return True


class TransactionCategory(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    keywords: tuple[str, ...]
    debit: AccountTarget
    credit: AccountTarget
    rules: tuple[ContextRule, ...] = ()
    amount_threshold: Optional[Decimal] = None
    confidence_boost: float = 0.0
    whole_words: bool = Field(
        default=False,
        description="Match keywords as whole words instead of substrings"
    )

    def keyword_hits(self, normalized_description: str) -> list[str]:
        if self.whole_words:
            return [
                k for k in self.keywords
                if re.search(rf"\b{re.escape(k)}\b", normalized_description)
            ]
        return [k for k in self.keywords if k in normalized_description]

    def threshold_reached(self, amount: Optional[Decimal]) -> bool:
        if self.amount_threshold is None or amount is None:
            return False
        return abs(amount) >= self.amount_threshold


DEFAULT_CATEGORIES: tuple[TransactionCategory, ...] = (
    TransactionCategory(
        name="Employee Compensation",
        keywords=("salary", "wage", "payroll", "bonus", "incentive payout", "commission"),
        debit=AccountTarget(type=AccountType.EXPENSE, subtype=AccountSubtype.OPERATING_EXPENSE),
        credit=AccountTarget(type=AccountType.LIABILITY, subtype=AccountSubtype.CURRENT_LIABILITY),
        rules=(
            ContextRule(
                reason="Unusually high amount for employee payment",
                adjustment=-0.1,
                amount_above=HIGH_VALUE_THRESHOLD,
            ),
            ContextRule(
                reason="Recurring employee payment pattern",
                adjustment=0.2,
                indicator="is_recurring",
            ),
        ),
        confidence_boost=0.2,
    ),
    TransactionCategory(
        name="Fixed Assets",
        keywords=("furniture", "equipment", "vehicle", "machinery", "computer"),
        debit=AccountTarget(type=AccountType.ASSET, subtype=AccountSubtype.NON_CURRENT_ASSET),
        credit=AccountTarget(type=AccountType.LIABILITY, subtype=AccountSubtype.CURRENT_LIABILITY),
        rules=(
            ContextRule(
                reason="Amount exceeds capitalization threshold",
                adjustment=0.2,
                amount_above=CAPITALIZATION_THRESHOLD,
            ),
            ContextRule(
                reason="Clear capital expense indicators",
                adjustment=0.3,
                indicator="is_capital_expense",
            ),
        ),
        amount_threshold=CAPITALIZATION_THRESHOLD,
    ),
    TransactionCategory(
        name="Financial Transactions",
        keywords=("loan", "interest", "repayment", "credit card", "debt"),
        debit=AccountTarget(type=AccountType.LIABILITY, subtype=AccountSubtype.CURRENT_LIABILITY),
        credit=AccountTarget(type=AccountType.ASSET, subtype=AccountSubtype.CURRENT_ASSET),
        rules=(
            ContextRule(
                reason="Regular financial payment pattern",
                adjustment=0.15,
                indicator="is_recurring",
            ),
        ),
    ),
    TransactionCategory(
        name="Customer Receipts",
        keywords=("receipt", "received", "customer", "invoice payment", "sale"),
        debit=AccountTarget(type=AccountType.ASSET, subtype=AccountSubtype.CURRENT_ASSET),
        credit=AccountTarget(type=AccountType.REVENUE, subtype=AccountSubtype.OPERATING_REVENUE),
        rules=(
            ContextRule(
                reason="Refund wording on a receipt",
                adjustment=-0.1,
                indicator="is_refund",
            ),
        ),
        confidence_boost=0.1,
        whole_words=True,
    ),
    TransactionCategory(
        name="Operating Expenses",
        keywords=(
            "rent", "utilities", "electricity", "office supplies", "subscription",
            "insurance", "internet", "fuel", "maintenance",
        ),
        debit=AccountTarget(type=AccountType.EXPENSE, subtype=AccountSubtype.OPERATING_EXPENSE),
        credit=AccountTarget(type=AccountType.ASSET, subtype=AccountSubtype.CURRENT_ASSET),
        rules=(
            ContextRule(
                reason="Recurring operating cost",
                adjustment=0.1,
                indicator="is_recurring",
            ),
        ),
        whole_words=True,
    ),
    TransactionCategory(
        name="Owner Equity",
        keywords=("capital contribution", "owner", "drawing", "dividend", "share capital"),
        debit=AccountTarget(type=AccountType.ASSET, subtype=AccountSubtype.CURRENT_ASSET),
        credit=AccountTarget(type=AccountType.EQUITY, subtype=AccountSubtype.CONTRIBUTED_CAPITAL),
        whole_words=True,
    ),
)


def _clamp(value: float) -> float:
    return max(0.0, min(CONFIDENCE_CEILING, value))


class TransactionClassifier:
    """
    Keyword and amount-threshold classifier.

    Scores every category, keeps the highest (first declared wins ties)
    and falls back to an expense/liability pairing when nothing matched.
    """

    def __init__(self, categories: Optional[Sequence[TransactionCategory]] = None):
        self._categories = tuple(categories) if categories is not None else DEFAULT_CATEGORIES

    @property
    def categories(self) -> tuple[TransactionCategory, ...]:
        return self._categories

    def score(self, category: TransactionCategory, description: str, amount: Optional[Decimal]) -> float:
        """Keyword hits, plus a flat bonus when a matched category's threshold is reached."""
        hits = category.keyword_hits(normalize_description(description))
        if not hits:
            return 0.0
        score = float(len(hits))
        if category.threshold_reached(amount):
            score += THRESHOLD_SCORE_BONUS
        return score

    def classify(self, description: Optional[str], amount: Optional[Decimal] = None) -> CategoryMatch:
        description = description or ""
        indicators = detect_indicators(description, amount)

        best: Optional[TransactionCategory] = None
        best_score = 0.0
        for category in self._categories:
            score = self.score(category, description, amount)
            if score > best_score:
                best, best_score = category, score

        if best is None:
            return CategoryMatch(
                category=None,
                score=0.0,
                debit=DEFAULT_DEBIT_TARGET,
                credit=DEFAULT_CREDIT_TARGET,
                confidence=DEFAULT_CONFIDENCE,
                indicators=indicators,
                reasoning=[
                    "No specific category match found",
                    "Using default expense classification",
                ],
            )

        hits = best.keyword_hits(normalize_description(description))
        threshold_reached = best.threshold_reached(amount)

        confidence = min(KEYWORD_BONUS_CAP, KEYWORD_BONUS * len(hits))
        if threshold_reached:
            confidence += THRESHOLD_CONFIDENCE_BONUS

        reasoning = [f"Matched category {best.name} on: {', '.join(hits)}"]
        for rule in best.rules:
            if rule.applies(amount, indicators):
                confidence += rule.adjustment
                reasoning.append(rule.reason)
        confidence += best.confidence_boost

        debit = best.debit
        if threshold_reached:
            debit = CAPITALIZED_TARGET
            reasoning.append("Amount reaches capitalization threshold, debit capitalized")

        reasoning.append(f"Debit account type: {debit.describe()}")
        reasoning.append(f"Credit account type: {best.credit.describe()}")
        if indicators.is_recurring:
            reasoning.append("Recurring transaction pattern detected")
        if indicators.is_capital_expense:
            reasoning.append("Capital expense indicators detected")

        return CategoryMatch(
            category=best.name,
            score=best_score,
            debit=debit,
            credit=best.credit,
            confidence=_clamp(confidence),
            keyword_hits=hits,
            indicators=indicators,
            reasoning=reasoning,
        )
