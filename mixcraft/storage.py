"""Row store backends and the submission storage service."""

import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Sequence

import pandas as pd

from .codec import COL, COLUMNS, decode_listing, decode_submission, encode_rows
from .config import StorageConfig
from .exceptions import ConfigurationError, StorageError
from .logger import get_logger
from .models import StoredSubmission, SubmissionRecord

logger = get_logger(__name__)

Row = List[Any]


class RowStore(ABC):
    """A spreadsheet-like table of submission rows."""

    @abstractmethod
    def append(self, rows: Sequence[Row]) -> None:
        pass

    @abstractmethod
    def get_all_rows(self) -> List[Row]:
        """All data rows, header excluded, in storage order."""
        pass

    def get_rows_by_submission_id(self, submission_id: str) -> List[Row]:
        return [
            row for row in self.get_all_rows()
            if len(row) > COL['submission_id'] and str(row[COL['submission_id']]) == submission_id
        ]


class InMemoryRowStore(RowStore):
    """List-backed store for development and tests."""

    def __init__(self, rows: Optional[Sequence[Row]] = None):
        self.rows: List[Row] = [list(row) for row in rows or []]

    def append(self, rows: Sequence[Row]) -> None:
        self.rows.extend(list(row) for row in rows)

    def get_all_rows(self) -> List[Row]:
        return [list(row) for row in self.rows]


class CsvRowStore(RowStore):
    """
    CSV file laid out like the submissions sheet.

    The first line is the header; every cell is read back as text, the same
    way a spreadsheet API returns values.
    """

    def __init__(self, data_dir: Path, filename: str = StorageConfig.CSV_FILENAME):
        self.data_dir = Path(data_dir)
        self.csv_path = self.data_dir / filename
        self._lock = threading.Lock()

    def ensure_data_dir(self) -> Path:
        """Ensure the data directory exists and return the CSV path."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return self.csv_path

    def append(self, rows: Sequence[Row]) -> None:
        csv_path = self.ensure_data_dir()
        df = pd.DataFrame([list(row) for row in rows], columns=COLUMNS)
        with self._lock:
            write_header = not csv_path.exists() or csv_path.stat().st_size == 0
            df.to_csv(csv_path, mode='a', header=write_header, index=False, encoding='utf-8')

    def get_all_rows(self) -> List[Row]:
        if not self.csv_path.exists() or self.csv_path.stat().st_size == 0:
            return []

        with self._lock:
            df = pd.read_csv(self.csv_path, dtype=str, keep_default_na=False, encoding='utf-8')
        return df.values.tolist()


class SubmissionStorage:
    """Saves submissions as row groups and reads them back."""

    def __init__(self, row_store: RowStore):
        self.row_store = row_store

    def save_submission(self, record: SubmissionRecord) -> str:
        """
        Append a submission to the row store.

        Args:
            record: The assembled submission

        Returns:
            The generated submission id

        Raises:
            StorageError: If the rows cannot be appended
        """
        submission_id = str(uuid.uuid4())
        timestamp = datetime.now(timezone.utc).isoformat()
        rows = encode_rows(record, submission_id, timestamp)

        try:
            self.row_store.append(rows)
        except Exception as e:
            raise StorageError(
                f"Failed to save submission to {StorageConfig.SHEET_NAME}",
                operation="append",
                details=str(e),
            )
        return submission_id

    def _read(self, reader, *args) -> List[Row]:
        try:
            return reader(*args)
        except Exception as e:
            raise StorageError(
                f"Failed to read from {StorageConfig.SHEET_NAME}",
                operation="read",
                details=str(e),
            )

    def get_submission(self, submission_id: str) -> Optional[StoredSubmission]:
        rows = self._read(self.row_store.get_rows_by_submission_id, submission_id)
        if not rows:
            return None
        return decode_submission(rows)

    def list_submissions(self) -> List[StoredSubmission]:
        """All stored submissions, most recent first."""
        return decode_listing(self._read(self.row_store.get_all_rows))

    def get_submission_stats(self) -> dict:
        """Get statistics about stored submissions."""
        submissions = self.list_submissions()
        emails = {s.email.strip().lower() for s in submissions if s.email}
        return {
            'total_submissions': len(submissions),
            'total_songs': sum(len(s.songs) for s in submissions),
            'unique_emails': len(emails),
        }


_provider: Optional[SubmissionStorage] = None
_provider_lock = threading.Lock()


def create_row_store(backend: str = None, data_dir: Path = None) -> RowStore:
    """Build the row store selected by configuration."""
    backend = backend or StorageConfig.get_backend()
    if backend == "csv":
        return CsvRowStore(data_dir or StorageConfig.get_data_dir())
    if backend == "memory":
        return InMemoryRowStore()
    raise ConfigurationError(
        f"Unknown storage backend: {backend}",
        parameter="MIXCRAFT_STORAGE_BACKEND",
        details=f"expected one of {', '.join(StorageConfig.BACKENDS)}",
    )


def get_storage_provider() -> SubmissionStorage:
    """Process-wide submission storage built on first use."""
    global _provider
    with _provider_lock:
        if _provider is None:
            _provider = SubmissionStorage(create_row_store())
            logger.info("Using %s row store", type(_provider.row_store).__name__)
        return _provider


def reset_storage_provider() -> None:
    global _provider
    with _provider_lock:
        _provider = None
