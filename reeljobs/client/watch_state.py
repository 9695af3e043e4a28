"""Persistence for in-flight job watches so they survive a client restart."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_SAFE_JOB_ID_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass(frozen=True)
class WatchRecord:
  """A job being watched and when the watch began."""

  job_id: str
  start_time: datetime

  def to_json(self) -> dict[str, str]:
    return {"job_id": self.job_id, "start_time": self.start_time.isoformat()}

  @classmethod
  def from_json(cls, payload: dict[str, str]) -> WatchRecord:
    return cls(job_id=str(payload["job_id"]), start_time=datetime.fromisoformat(str(payload["start_time"])))


class WatchStateStore(Protocol):
  def save(self, record: WatchRecord) -> None:
    """Persist or overwrite the watch for ``record.job_id``."""

  def load(self, job_id: str) -> WatchRecord | None:
    """Return the persisted watch for a job, if any."""

  def delete(self, job_id: str) -> None:
    """Forget a watch; missing watches are ignored."""

  def list_all(self) -> list[WatchRecord]:
    """Return every persisted watch."""


class MemoryWatchStateStore(WatchStateStore):
  def __init__(self) -> None:
    self._records: dict[str, WatchRecord] = {}

  def save(self, record: WatchRecord) -> None:
    self._records[record.job_id] = record

  def load(self, job_id: str) -> WatchRecord | None:
    return self._records.get(job_id)

  def delete(self, job_id: str) -> None:
    self._records.pop(job_id, None)

  def list_all(self) -> list[WatchRecord]:
    return list(self._records.values())


class FileWatchStateStore(WatchStateStore):
  """One JSON file per job id, written with an atomic replace."""

  def __init__(self, directory: str | os.PathLike[str]) -> None:
    self._directory = Path(directory).expanduser()
    self._directory.mkdir(parents=True, exist_ok=True)

  def _path(self, job_id: str) -> Path:
    if not _SAFE_JOB_ID_RE.fullmatch(job_id):
      raise ValueError(f"Invalid job id for watch state: {job_id!r}")
    return self._directory / f"{job_id}.json"

  def save(self, record: WatchRecord) -> None:
    target = self._path(record.job_id)
    fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".watch-", suffix=".tmp")
    try:
      with os.fdopen(fd, "w", encoding="utf-8") as handle:
        json.dump(record.to_json(), handle)
      os.replace(tmp_name, target)
    except BaseException:
      Path(tmp_name).unlink(missing_ok=True)
      raise

  def load(self, job_id: str) -> WatchRecord | None:
    path = self._path(job_id)
    if not path.exists():
      return None
    return self._read(path)

  def delete(self, job_id: str) -> None:
    self._path(job_id).unlink(missing_ok=True)

  def list_all(self) -> list[WatchRecord]:
    records: list[WatchRecord] = []
    for path in sorted(self._directory.glob("*.json")):
      record = self._read(path)
      if record is not None:
        records.append(record)
    return records

  def _read(self, path: Path) -> WatchRecord | None:
    try:
      return WatchRecord.from_json(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError, KeyError, TypeError) as exc:
      logger.warning("Ignoring unreadable watch state %s: %s", path, exc)
      return None
