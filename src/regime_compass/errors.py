"""Exception types and the injectable error log for Regime Compass."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class RegimeCompassError(Exception):
    """Base class for all engine errors."""
    pass


class InsufficientDataError(RegimeCompassError, ValueError):
    """Raised when a statistical primitive gets a series that is too short.

    Attributes:
        required: Minimum number of points the calculation needs
        actual: Number of points that were supplied
    """

    def __init__(self, name: str, required: int, actual: int):
        self.name = name
        self.required = required
        self.actual = actual
        super().__init__(
            f"{name} requires at least {required} data points, got {actual}"
        )


@dataclass(frozen=True)
class ErrorRecord:
    """One swallowed error captured while a stage degraded."""
    stage: str
    error_type: str
    message: str
    timestamp: datetime


@dataclass
class ErrorLog:
    """Collects errors from stages that fell back to a neutral result.

    Constructed by the caller and passed to the stages. The pipeline gives
    each run its own log, so concurrent runs never share error state.
    """
    max_entries: int = 100
    _entries: List[ErrorRecord] = field(default_factory=list)
    _recorded: int = 0

    def record(self, stage: str, error: Exception) -> ErrorRecord:
        """Record an error raised inside a stage.

        Args:
            stage: Name of the stage that degraded
            error: The exception that was caught

        Returns:
            The stored record
        """
        entry = ErrorRecord(
            stage=stage,
            error_type=type(error).__name__,
            message=str(error),
            timestamp=datetime.now(),
        )
        self._entries.append(entry)
        self._recorded += 1
        if len(self._entries) > self.max_entries:
            self._entries = self._entries[-self.max_entries:]
        logger.debug(f"Recorded {stage} error: {entry.error_type}: {entry.message}")
        return entry

    @property
    def entries(self) -> List[ErrorRecord]:
        return list(self._entries)

    @property
    def recorded(self) -> int:
        """Total errors recorded, including any trimmed from the log."""
        return self._recorded

    def extend(self, records: Iterable[ErrorRecord]) -> None:
        """Append records collected by another log, such as one pipeline run."""
        for entry in records:
            self._entries.append(entry)
            self._recorded += 1
        if len(self._entries) > self.max_entries:
            self._entries = self._entries[-self.max_entries:]

    def count_by_stage(self) -> Dict[str, int]:
        return dict(Counter(e.stage for e in self._entries))

    def last(self, stage: Optional[str] = None) -> Optional[ErrorRecord]:
        for entry in reversed(self._entries):
            if stage is None or entry.stage == stage:
                return entry
        return None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def record_error(error_log: Optional[ErrorLog], stage: str, error: Exception) -> None:
    """Record ``error`` when a log was injected."""
    if error_log is not None:
        error_log.record(stage, error)
