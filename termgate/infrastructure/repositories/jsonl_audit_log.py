"""JSON-lines audit log with hash chaining.

Every line is one record::

    {"seq": 3, "prev_hash": "<hex>", "event": {...}, "hash": "<hex>"}

where ``hash = sha256(prev_hash + ":" + canonical_json(seq, prev_hash, event))``.
Editing, reordering or deleting any line breaks the chain from that point
on, which ``verify`` reports.
"""

import hashlib
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from termgate.domain import AuditEvent, AuditQuery, AuditWriteFailure, GatewayError

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64


class AuditIntegrityError(GatewayError):
    """The audit file is malformed or its hash chain is broken."""

    def __init__(self, line_number: int, reason: str) -> None:
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Audit log integrity failure at line {line_number}: {reason}")


def _canonical(record: dict[str, Any]) -> str:
    return json.dumps(record, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def chain_hash(previous_hash: str, seq: int, event: dict[str, Any]) -> str:
    payload = _canonical({"seq": seq, "prev_hash": previous_hash, "event": event})
    return hashlib.sha256(f"{previous_hash}:{payload}".encode()).hexdigest()


class JsonlAuditLog:
    """Durable append-only audit log stored as a JSON-lines file.

    Events are also kept in memory for querying. Existing files are
    loaded on construction and the chain continues from the last record.
    """

    def __init__(self, path: Path | str, fsync: bool = True) -> None:
        self._path = Path(path)
        self._fsync = fsync
        self._lock = threading.Lock()
        self._events: list[AuditEvent] = []
        self._last_hash = GENESIS_HASH
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def last_hash(self) -> str:
        return self._last_hash

    def _load(self) -> None:
        if not self._path.exists():
            return

        with open(self._path, encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                    self._events.append(AuditEvent.from_dict(record["event"]))
                    self._last_hash = record["hash"]
                except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                    raise AuditIntegrityError(line_number, f"unreadable record ({e})") from e

        logger.info("Loaded audit log path=%s events=%d", self._path, len(self._events))

    def append(self, event: AuditEvent) -> None:
        with self._lock:
            seq = len(self._events) + 1
            payload = event.to_dict()
            digest = chain_hash(self._last_hash, seq, payload)
            record = {"seq": seq, "prev_hash": self._last_hash, "event": payload, "hash": digest}

            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with open(self._path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(record, ensure_ascii=False) + "\n")
                    f.flush()
                    if self._fsync:
                        os.fsync(f.fileno())
            except OSError as e:
                raise AuditWriteFailure(f"Cannot write audit log {self._path}: {e}") from e

            self._events.append(event)
            self._last_hash = digest

    def query(self, query: AuditQuery | None = None) -> list[AuditEvent]:
        with self._lock:
            snapshot = list(self._events)
        return (query or AuditQuery()).apply(snapshot)

    def terminal_identifiers(self) -> list[str]:
        with self._lock:
            identifiers = {e.terminal_identifier for e in self._events if e.terminal_identifier}
        return sorted(identifiers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def verify(self) -> int:
        """Re-read the file and check the whole hash chain.

        Returns:
            Number of verified records.

        Raises:
            AuditIntegrityError: On the first malformed or tampered line.
        """
        if not self._path.exists():
            return 0

        previous = GENESIS_HASH
        expected_seq = 1
        with self._lock, open(self._path, encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                    seq, prev_hash, event, digest = (
                        record["seq"],
                        record["prev_hash"],
                        record["event"],
                        record["hash"],
                    )
                except (json.JSONDecodeError, KeyError, TypeError) as e:
                    raise AuditIntegrityError(line_number, f"unreadable record ({e})") from e

                if seq != expected_seq:
                    raise AuditIntegrityError(line_number, f"expected seq {expected_seq}, got {seq}")
                if prev_hash != previous:
                    raise AuditIntegrityError(line_number, "previous hash mismatch")
                if chain_hash(prev_hash, seq, event) != digest:
                    raise AuditIntegrityError(line_number, "record hash mismatch")

                previous = digest
                expected_seq += 1

        return expected_seq - 1
