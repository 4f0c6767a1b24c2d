"""
Usage History

The only learned state of the mapping engine:
1. How often each account was confirmed for a normalized description
2. The observed [min, max] amount range per (account type, account code)

Both maps are guarded by one lock. Ranges only ever widen.
"""

import threading
from decimal import Decimal
from typing import Any, Optional

from ledger_guard.mapping.text import normalize_description
from ledger_guard.models.account import Account


class UsageHistory:
    """Lock-guarded usage frequencies and amount ranges."""

    def __init__(self):
        self._lock = threading.Lock()
        self._usage: dict[str, list[list[Any]]] = {}
        self._ranges: dict[tuple[str, str], tuple[Decimal, Decimal]] = {}

    @staticmethod
    def key_for(description: Optional[str]) -> str:
        return normalize_description(description)

    @staticmethod
    def _range_key(account: Account) -> tuple[str, str]:
        return (account.type.value, account.code)

    def record(self, description: Optional[str], account: Account, amount: Optional[Decimal] = None) -> None:
        """Count one confirmed use of an account and widen its amount range."""
        key = self.key_for(description)
        with self._lock:
            entries = self._usage.setdefault(key, [])
            for entry in entries:
                if entry[0] == account.id:
                    entry[1] += 1
                    break
            else:
                entries.append([account.id, 1])
            # Stable: ties keep first-seen order
            entries.sort(key=lambda entry: -entry[1])

            if amount is not None:
                range_key = self._range_key(account)
                current = self._ranges.get(range_key)
                if current is None:
                    self._ranges[range_key] = (amount, amount)
                else:
                    self._ranges[range_key] = (min(current[0], amount), max(current[1], amount))

    def frequencies(self, description: Optional[str]) -> list[tuple[str, int]]:
        """(account id, frequency) pairs, most frequent first."""
        with self._lock:
            return [(entry[0], entry[1]) for entry in self._usage.get(self.key_for(description), [])]

    def has_usage(self, description: Optional[str], account_id: str) -> bool:
        return any(aid == account_id for aid, _ in self.frequencies(description))

    def accuracy(self, description: Optional[str], account_id: str) -> float:
        """The account's share of all confirmed uses for this description."""
        entries = self.frequencies(description)
        total = sum(frequency for _, frequency in entries)
        if total == 0:
            return 0.0
        for aid, frequency in entries:
            if aid == account_id:
                return frequency / total
        return 0.0

    def amount_range(self, account: Account) -> Optional[tuple[Decimal, Decimal]]:
        with self._lock:
            return self._ranges.get(self._range_key(account))

    def within_range(self, account: Account, amount: Optional[Decimal]) -> bool:
        """False when no range has been observed yet."""
        if amount is None:
            return False
        observed = self.amount_range(account)
        if observed is None:
            return False
        return observed[0] <= amount <= observed[1]

    # =========================================================================
    # Snapshot support
    # =========================================================================

    def export(self) -> dict[str, Any]:
        """JSON-friendly copy of the learned state."""
        with self._lock:
            return {
                "usage": {
                    key: [{"account_id": e[0], "frequency": e[1]} for e in entries]
                    for key, entries in self._usage.items()
                },
                "amount_ranges": [
                    {
                        "account_type": account_type,
                        "account_code": code,
                        "min": str(low),
                        "max": str(high),
                    }
                    for (account_type, code), (low, high) in self._ranges.items()
                ],
            }

    def load(self, snapshot: dict[str, Any]) -> None:
        """Replace the learned state with an exported snapshot."""
        usage = {
            key: sorted(
                ([e["account_id"], int(e["frequency"])] for e in entries),
                key=lambda entry: -entry[1],
            )
            for key, entries in snapshot.get("usage", {}).items()
        }
        ranges = {
            (r["account_type"], r["account_code"]): (Decimal(r["min"]), Decimal(r["max"]))
            for r in snapshot.get("amount_ranges", [])
        }
        with self._lock:
            self._usage = usage
            self._ranges = ranges

    def reset(self) -> None:
        with self._lock:
            self._usage.clear()
            self._ranges.clear()
