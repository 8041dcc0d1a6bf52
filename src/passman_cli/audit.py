"""Operation Log - Append-only record of what the CLI did to the store.

Lines never contain passwords, only the command and key involved.
"""

import os
from datetime import datetime
from pathlib import Path

LOG_FILE = "passman.log"


class OperationLog:
    """Append-only operation log kept next to the passwords file."""

    def __init__(self, log_path: Path):
        """Initialize operation log.

        Args:
            log_path: Path to the log file (e.g., ~/passman.log)

        """
        self.log_path = Path(log_path)

    def _ensure_file(self) -> None:
        if self.log_path.exists():
            return
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(
            str(self.log_path),
            os.O_CREAT | os.O_APPEND | os.O_WRONLY,
            0o600
        )
        os.close(fd)

    def write(self, message: str) -> None:
        """Append one line and flush it to disk.

        Format: ISO8601 (local time, milliseconds) - message

        Raises:
            OSError: if the log file cannot be opened or written

        """
        self._ensure_file()
        timestamp = datetime.now().astimezone().isoformat(timespec="milliseconds")
        with open(self.log_path, "a") as f:
            f.write(f"{timestamp} - {message}\n")
            f.flush()
            os.fsync(f.fileno())

    def read_recent(self, lines: int = 100) -> list:
        """Read recent log entries, most recent last."""
        if not self.log_path.exists():
            return []
        with open(self.log_path) as f:
            return f.readlines()[-lines:]
