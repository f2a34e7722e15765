"""
Incremental Game.log tail reader.

The game only ever appends to its log until a new session starts, at which
point the file is recreated (shorter). The reader keeps a line cursor and
hands back only the lines appended since the previous read.
"""
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from logsync.services.shared.observability import _logger


@dataclass
class Cursor:
    """Read position into the tracked log file."""
    file_path: str
    lines_consumed: int = 0
    active_cutoff: Optional[str] = None  # events before this instant are suppressed

    def to_dict(self):
        return {
            "file_path": self.file_path,
            "lines_consumed": self.lines_consumed,
            "active_cutoff": self.active_cutoff,
        }


@dataclass
class TailBatch:
    lines: List[str] = field(default_factory=list)
    truncated: bool = False
    start_line: int = 0
    total_lines: int = 0


class TailReader:
    """
    Thread-safe incremental reader.

    Both the file watcher and the watchdog call read_new(); the lock makes
    back-to-back invocations safe and the cursor only moves on line counts.
    """

    def __init__(self, cursor: Cursor, encoding: str = 'utf-8'):
        self._cursor = cursor
        self._encoding = encoding
        self._lock = threading.Lock()

    @property
    def cursor(self) -> Cursor:
        return self._cursor

    def _read_lines(self) -> Optional[List[str]]:
        try:
            with open(self._cursor.file_path, 'r', encoding=self._encoding, errors='replace') as f:
                content = f.read()
        except OSError as e:
            _logger.debug(f"Tail read skipped for {self._cursor.file_path}: {e}")
            return None
        return content.splitlines()

    def read_new(self) -> TailBatch:
        """Return lines appended since the last call.

        Truncation (fewer lines than already consumed) resets the cursor and
        returns the whole file with ``truncated=True`` so the caller can
        clear its in-memory timeline before reprocessing.
        """
        with self._lock:
            lines = self._read_lines()
            if lines is None:
                return TailBatch(start_line=self._cursor.lines_consumed,
                                 total_lines=self._cursor.lines_consumed)

            count = len(lines)
            truncated = False
            if count < self._cursor.lines_consumed:
                _logger.info(
                    f"Log truncated ({count} < {self._cursor.lines_consumed} lines), restarting from line 0"
                )
                self._cursor.lines_consumed = 0
                truncated = True

            start = self._cursor.lines_consumed
            if count == start:
                return TailBatch(truncated=truncated, start_line=start, total_lines=count)

            # Advance unconditionally so unparseable bursts are not retried forever
            self._cursor.lines_consumed = count
            return TailBatch(lines=lines[start:count], truncated=truncated,
                             start_line=start, total_lines=count)

    def reset(self, cutoff: Optional[str] = None) -> None:
        with self._lock:
            self._cursor.lines_consumed = 0
            self._cursor.active_cutoff = cutoff
