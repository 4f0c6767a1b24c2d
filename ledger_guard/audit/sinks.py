"""
Diagnostics Sinks

DESIGN DECISION: The event log writes through an abstract sink.
This allows us to:
1. Keep entries in memory for tests and short-lived sessions
2. Append them to a JSON-lines file for operators
3. Add other backends without touching the engine

Sinks are synchronous: validation runs synchronously and entries are small.
"""

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

from ledger_guard.models.audit import DiagnosticEntry


class DiagnosticsSink(ABC):
    """
    Abstract append-only destination for diagnostic entries.

    Implementations may raise on write failure; EventLog catches and
    logs such failures so they never reach the engine.
    """

    @abstractmethod
    def append(self, entry: DiagnosticEntry) -> None:
        """Append one entry. Entries are never modified afterwards."""
        pass

    @abstractmethod
    def entries(self) -> list[DiagnosticEntry]:
        """
        Return every entry written so far, oldest first.

        Returns a copy; callers cannot mutate the sink through it.
        """
        pass


class InMemoryDiagnosticsSink(DiagnosticsSink):
    """Thread-safe in-memory sink."""

    def __init__(self):
        self._entries: list[DiagnosticEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: DiagnosticEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def entries(self) -> list[DiagnosticEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class JsonLinesDiagnosticsSink(DiagnosticsSink):
    """
    Appends one JSON object per line to a file.

    The file is opened in append mode for every write, so several
    processes may share it and nothing already written is rewritten.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def append(self, entry: DiagnosticEntry) -> None:
        line = entry.to_json_line()
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    def entries(self) -> list[DiagnosticEntry]:
        if not self._path.exists():
            return []
        with self._lock:
            with self._path.open("r", encoding="utf-8") as handle:
                lines = [line for line in handle if line.strip()]
        return [DiagnosticEntry.model_validate_json(line) for line in lines]
