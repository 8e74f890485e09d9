"""Audit sink — append-only JSON Lines with size rotation and hash chain.

Each line carries ``prev_hash``: the SHA-256 of the previous line, or null
for the first line of a file.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path

from src.models import AuditEvent


@dataclass
class ChainValidationResult:
    valid: bool
    broken_at_line: int | None = None


def _line_hash(line: str) -> str:
    return hashlib.sha256(line.encode()).hexdigest()


def validate_audit_chain(log_path: Path) -> ChainValidationResult:
    """Check that every line's ``prev_hash`` matches the line before it."""
    text = log_path.read_text().strip()
    if not text:
        return ChainValidationResult(valid=True)

    previous: str | None = None
    for number, line in enumerate(text.split("\n"), start=1):
        expected = _line_hash(previous) if previous is not None else None
        if json.loads(line).get("prev_hash") != expected:
            return ChainValidationResult(valid=False, broken_at_line=number)
        previous = line

    return ChainValidationResult(valid=True)


class AuditLogger:
    """Records webhook, fetch and upload outcomes as JSON lines."""

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        self._last_line: str | None = None
        # Resume the chain from an existing file
        if self.log_path.exists():
            text = self.log_path.read_text().strip()
            if text:
                self._last_line = text.rsplit("\n", 1)[-1]

    @classmethod
    def from_env(cls, log_path: str) -> AuditLogger:
        max_bytes = int(os.environ.get("AUDIT_LOG_MAX_BYTES", "10485760"))
        backup_count = int(os.environ.get("AUDIT_LOG_BACKUP_COUNT", "5"))
        return cls(log_path=log_path, max_bytes=max_bytes, backup_count=backup_count)

    def _backup(self, index: int) -> Path:
        return self.log_path.with_name(f"{self.log_path.name}.{index}")

    def _maybe_rotate(self) -> bool:
        """Shift ``audit.jsonl`` -> ``.1`` -> ``.2`` ... when over the size cap."""
        if not self.log_path.exists() or self.log_path.stat().st_size < self._max_bytes:
            return False

        self._backup(self._backup_count).unlink(missing_ok=True)
        for i in range(self._backup_count - 1, 0, -1):
            if self._backup(i).exists():
                self._backup(i).rename(self._backup(i + 1))
        self.log_path.rename(self._backup(1))
        return True

    def log(self, event: AuditEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

        lock_file = self.log_path.parent / f".{self.log_path.name}.lock"
        with open(lock_file, "w") as lf:
            fcntl.flock(lf, fcntl.LOCK_EX)
            try:
                if self._maybe_rotate():
                    # A fresh file starts a fresh chain
                    self._last_line = None
                data = json.loads(event.model_dump_json())
                data["prev_hash"] = (
                    _line_hash(self._last_line) if self._last_line is not None else None
                )
                line = json.dumps(data, separators=(",", ":"))
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lf, fcntl.LOCK_UN)

        self._last_line = line
