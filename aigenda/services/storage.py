"""Day-log storage interface and implementations."""

from datetime import date
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from aigenda.exceptions import StorageError
from aigenda.models.notes import DayLog
from aigenda.utils.logging import get_logger

logger = get_logger(__name__)


class Storage(Protocol):
    """Interface for note storage backends."""

    def load_day(self, day: date) -> DayLog:
        """Load the notes for a day.

        Args:
            day: Calendar date to load

        Returns:
            The stored log, or an empty log when nothing was recorded that day
        """
        ...

    def save_day(self, day_log: DayLog) -> None:
        """Persist a day's notes, replacing whatever was stored before."""
        ...

    def iter_days(self) -> list[DayLog]:
        """Return every stored day, oldest first."""
        ...


class FsStorage:
    """File-backed storage: one pretty-printed JSON document per calendar day."""

    def __init__(self, data_dir: Path):
        """Initialize storage rooted at ``data_dir``."""
        self.data_dir = data_dir
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Could not create data directory {data_dir}: {e}") from e

    def load_day(self, day: date) -> DayLog:
        """Load a day log, returning an empty one if the file does not exist."""
        path = self._day_path(day)
        if not path.exists():
            return DayLog(date=day)
        return self._read(path)

    def save_day(self, day_log: DayLog) -> None:
        """Write a day log to disk."""
        path = self._day_path(day_log.date)
        try:
            path.write_text(day_log.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not write to {path}: {e}") from e
        logger.debug(f"Saved {len(day_log.notes)} notes to {path}")

    def iter_days(self) -> list[DayLog]:
        """Read every day file in the data directory, sorted by date."""
        try:
            paths = sorted(self.data_dir.glob("*.json"))
        except OSError as e:
            raise StorageError(f"Could not read data directory {self.data_dir}: {e}") from e
        return sorted((self._read(path) for path in paths), key=lambda log: log.date)

    def _day_path(self, day: date) -> Path:
        return self.data_dir / f"{day.isoformat()}.json"

    def _read(self, path: Path) -> DayLog:
        try:
            return DayLog.model_validate_json(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageError(f"Could not read file {path}: {e}") from e
        except ValidationError as e:
            raise StorageError(f"Could not parse JSON from {path}: {e}") from e


class InMemoryStorage:
    """In-memory storage

    Keeps day logs in a dict; used by tests and dry runs.
    """

    def __init__(self):
        """Initialize with no stored days."""
        self.days: dict[date, DayLog] = {}

    def load_day(self, day: date) -> DayLog:
        """Return a copy of the stored log so callers must save to persist changes."""
        stored = self.days.get(day)
        return stored.model_copy(deep=True) if stored else DayLog(date=day)

    def save_day(self, day_log: DayLog) -> None:
        """Store a copy of the log."""
        self.days[day_log.date] = day_log.model_copy(deep=True)

    def iter_days(self) -> list[DayLog]:
        """Return all stored logs, oldest first."""
        return [self.days[day].model_copy(deep=True) for day in sorted(self.days)]
