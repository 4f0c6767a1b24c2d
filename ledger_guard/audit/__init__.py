"""Diagnostics package."""

from ledger_guard.audit.logger import EventLog, configure_logging
from ledger_guard.audit.sinks import (
    DiagnosticsSink,
    InMemoryDiagnosticsSink,
    JsonLinesDiagnosticsSink,
)

__all__ = [
    "DiagnosticsSink",
    "EventLog",
    "InMemoryDiagnosticsSink",
    "JsonLinesDiagnosticsSink",
    "configure_logging",
]
