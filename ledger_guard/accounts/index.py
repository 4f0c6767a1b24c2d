"""
Account Index

Read-only lookup structure over a chart of accounts. Built once per
engine initialization and never mutated: a changed chart means a new
index.
"""

from collections import defaultdict
from typing import Iterable, Optional

from ledger_guard.models.account import Account, AccountSubtype, AccountType


HIERARCHY_SEPARATOR = "."


class AccountIndexError(Exception):
    """Base exception for account index errors."""
    pass


class NoAccountsProvidedError(AccountIndexError):
    """Raised when the index is built from an empty chart."""
    pass


class DuplicateAccountCodeError(AccountIndexError):
    """Raised when one code appears twice within the same standard."""

    def __init__(self, code: str, standard_id: Optional[str]):
        self.code = code
        self.standard_id = standard_id
        super().__init__(
            f"Duplicate account code {code!r} in standard {standard_id or '<default>'}"
        )


def _by_code(accounts: Iterable[Account]) -> list[Account]:
    return sorted(accounts, key=lambda account: account.code)


class AccountIndex:
    """
    Lookups by id, code, type and subtype.

    Type and subtype buckets contain active accounts only and are
    sorted by code. Id and code lookups include inactive accounts so
    that validation can still resolve what a transaction references.
    """

    def __init__(self, accounts: Iterable[Account]):
        accounts = list(accounts)
        if not accounts:
            raise NoAccountsProvidedError("Chart of accounts is empty")

        self._by_id: dict[str, Account] = {}
        self._by_code: dict[str, Account] = {}
        seen_codes: set[tuple[Optional[str], str]] = set()
        by_type: dict[AccountType, list[Account]] = defaultdict(list)
        by_subtype: dict[AccountSubtype, list[Account]] = defaultdict(list)

        for account in accounts:
            key = (account.standard_id, account.code)
            if key in seen_codes:
                raise DuplicateAccountCodeError(account.code, account.standard_id)
            seen_codes.add(key)

            self._by_id[account.id] = account
            # First standard wins for bare code lookups
            self._by_code.setdefault(account.code, account)

            if account.is_active:
                by_type[account.type].append(account)
                by_subtype[account.subtype].append(account)

        self._accounts = _by_code(accounts)
        self._by_type = {t: _by_code(items) for t, items in by_type.items()}
        self._by_subtype = {s: _by_code(items) for s, items in by_subtype.items()}

    def __len__(self) -> int:
        return len(self._accounts)

    def __iter__(self):
        return iter(self._accounts)

    @property
    def accounts(self) -> list[Account]:
        return list(self._accounts)

    @property
    def active_accounts(self) -> list[Account]:
        return [a for a in self._accounts if a.is_active]

    def get(self, account_id: Optional[str]) -> Optional[Account]:
        if not account_id:
            return None
        return self._by_id.get(account_id)

    def by_code(self, code: str) -> Optional[Account]:
        return self._by_code.get(code)

    def by_type(self, account_type: AccountType) -> list[Account]:
        return list(self._by_type.get(account_type, []))

    def by_subtype(self, subtype: AccountSubtype) -> list[Account]:
        return list(self._by_subtype.get(subtype, []))

    def eligible(
        self,
        account_type: AccountType,
        subtype: Optional[AccountSubtype] = None,
    ) -> list[Account]:
        """
        Active accounts for a posting target.

        Subtype accounts of the wanted type come first; when there are
        none, every active account of the type is returned.
        """
        if subtype is not None:
            matches = [a for a in self.by_subtype(subtype) if a.type == account_type]
            if matches:
                return matches
        return self.by_type(account_type)

    # =========================================================================
    # HIERARCHY
    # =========================================================================

    @staticmethod
    def parent_code(code: str) -> Optional[str]:
        """Code of the parent account, or None for a top-level code."""
        if HIERARCHY_SEPARATOR not in code:
            return None
        return code.rsplit(HIERARCHY_SEPARATOR, 1)[0]

    @staticmethod
    def hierarchy_level(code: str) -> int:
        """Depth of a code; top-level codes are level 0."""
        return code.count(HIERARCHY_SEPARATOR)

    def children_of(self, code: str) -> list[Account]:
        """Direct children of the given code, sorted by code."""
        return [a for a in self._accounts if self.parent_code(a.code) == code]
