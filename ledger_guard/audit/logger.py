"""
Event Log

DESIGN DECISION: Every validation and mapping decision of consequence is
recorded. This provides:
1. Traceability of why a posting was accepted or blocked
2. Debugging capability for mapping suggestions
3. Evidence of who authorized which override

The event log:
- Writes each entry to structlog and to a pluggable sink
- Gracefully handles sink failures (never breaks validation or mapping)
- Offers a small read side for operators
"""

import logging
from typing import Optional

import structlog

from ledger_guard.audit.sinks import DiagnosticsSink, InMemoryDiagnosticsSink
from ledger_guard.models.audit import (
    DiagnosticEntry,
    DiagnosticLevel,
    DiagnosticStage,
)


def _configure_structlog(renderer) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure structlog for local logging
_configure_structlog(structlog.processors.JSONRenderer())


def configure_logging(debug_mode: bool = False, log_json: bool = True) -> None:
    """
    Re-configure local logging from engine settings.

    Called by create_engine_components with the engine settings.
    """
    level = logging.DEBUG if debug_mode else logging.INFO
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)
    _configure_structlog(
        structlog.processors.JSONRenderer()
        if log_json
        else structlog.dev.ConsoleRenderer()
    )


class EventLog:
    """
    Central diagnostics handle, injected into every component.

    Logs entries both to:
    1. Structured local log (for debugging)
    2. A DiagnosticsSink (for audit and the read side below)
    """

    def __init__(self, sink: Optional[DiagnosticsSink] = None):
        """
        Initialize the event log.

        Args:
            sink: Destination for entries.
                  If None, an in-memory sink is used.
        """
        self._sink = sink if sink is not None else InMemoryDiagnosticsSink()
        self._logger = structlog.get_logger("ledger_guard")

    @property
    def sink(self) -> DiagnosticsSink:
        return self._sink

    def record(self, entry: DiagnosticEntry) -> bool:
        """
        Record a diagnostic entry.

        Always logs locally. Returns False if the sink write failed.
        """
        log_dict = entry.to_log_dict()

        if entry.level == DiagnosticLevel.ERROR:
            self._logger.error("diagnostic_entry", **log_dict)
        elif entry.level == DiagnosticLevel.WARNING:
            self._logger.warning("diagnostic_entry", **log_dict)
        elif entry.level == DiagnosticLevel.DEBUG:
            self._logger.debug("diagnostic_entry", **log_dict)
        else:
            self._logger.info("diagnostic_entry", **log_dict)

        try:
            self._sink.append(entry)
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "diagnostics_sink_failed",
                error=str(e),
                entry_id=str(entry.entry_id),
            )
            return False

        return True

    # =========================================================================
    # READ SIDE
    # =========================================================================

    def entries(self) -> list[DiagnosticEntry]:
        return self._sink.entries()

    def entries_for_transaction(self, transaction_id: str) -> list[DiagnosticEntry]:
        return [e for e in self._sink.entries() if e.transaction_id == transaction_id]

    def entries_for_stage(self, stage: DiagnosticStage) -> list[DiagnosticEntry]:
        return [e for e in self._sink.entries() if e.stage == stage]

    def summary(self) -> dict[str, int]:
        """
        Counts over everything recorded so far.

        "successful" counts info-level entries; debug entries are only
        part of the total.
        """
        entries = self._sink.entries()
        return {
            "total": len(entries),
            "errors": sum(1 for e in entries if e.level == DiagnosticLevel.ERROR),
            "warnings": sum(1 for e in entries if e.level == DiagnosticLevel.WARNING),
            "successful": sum(1 for e in entries if e.level == DiagnosticLevel.INFO),
        }
