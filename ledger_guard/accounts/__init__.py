"""Chart of accounts lookup package."""

from ledger_guard.accounts.index import (
    AccountIndex,
    AccountIndexError,
    DuplicateAccountCodeError,
    NoAccountsProvidedError,
)

__all__ = [
    "AccountIndex",
    "AccountIndexError",
    "DuplicateAccountCodeError",
    "NoAccountsProvidedError",
]
