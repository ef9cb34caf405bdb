"""Expiring key-value store.

Values are wrapped in a ``{value, timestamp}`` envelope (timestamp in epoch
milliseconds) and written as JSON strings to a synchronous string-keyed
backend. Expiry is lazy: an envelope older than the threshold is removed the
next time it is read.
"""

from __future__ import annotations
import json
import logging
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker

from .models import KeyValueEntry
from .schemas import StoredRecord
from .settings import Settings

logger = logging.getLogger(__name__)

Expiry = Union[int, float, timedelta]


class KeyValueBackend(Protocol):
	def get_item(self, key: str) -> Optional[str]: ...
	def set_item(self, key: str, raw: str) -> None: ...
	def remove_item(self, key: str) -> None: ...


class MemoryBackend:
	def __init__(self) -> None:
		self._items: Dict[str, str] = {}

	def get_item(self, key: str) -> Optional[str]:
		return self._items.get(key)

	def set_item(self, key: str, raw: str) -> None:
		self._items[key] = raw

	def remove_item(self, key: str) -> None:
		self._items.pop(key, None)


class FileBackend:
	"""All keys in one JSON file, rewritten on every change."""

	def __init__(self, path: Union[str, Path]) -> None:
		self.path = Path(path)

	def _read_all(self) -> Dict[str, str]:
		if not self.path.exists():
			return {}
		try:
			data = json.loads(self.path.read_text(encoding="utf-8"))
		except (OSError, ValueError) as err:
			logger.info("Ignoring unreadable storage file %s: %s", self.path, err)
			return {}
		return data if isinstance(data, dict) else {}

	def _write_all(self, items: Dict[str, str]) -> None:
		self.path.parent.mkdir(parents=True, exist_ok=True)
		tmp = self.path.with_suffix(self.path.suffix + ".tmp")
		tmp.write_text(json.dumps(items), encoding="utf-8")
		tmp.replace(self.path)

	def get_item(self, key: str) -> Optional[str]:
		raw = self._read_all().get(key)
		return raw if isinstance(raw, str) else None

	def set_item(self, key: str, raw: str) -> None:
		items = self._read_all()
		items[key] = raw
		self._write_all(items)

	def remove_item(self, key: str) -> None:
		items = self._read_all()
		if items.pop(key, None) is not None:
			self._write_all(items)


class DatabaseBackend:
	"""Optional durable tier backed by the kv_entries table."""

	def __init__(self, session_factory: sessionmaker) -> None:
		self._session_factory = session_factory

	def get_item(self, key: str) -> Optional[str]:
		db: Session = self._session_factory()
		try:
			row = db.get(KeyValueEntry, key)
			return row.raw if row is not None else None
		finally:
			db.close()

	def set_item(self, key: str, raw: str) -> None:
		db: Session = self._session_factory()
		try:
			row = db.get(KeyValueEntry, key)
			if row is None:
				db.add(KeyValueEntry(key=key, raw=raw))
			else:
				row.raw = raw
				row.updated_at = datetime.utcnow()
			db.commit()
		except Exception:
			db.rollback()
			raise
		finally:
			db.close()

	def remove_item(self, key: str) -> None:
		db: Session = self._session_factory()
		try:
			row = db.get(KeyValueEntry, key)
			if row is not None:
				db.delete(row)
				db.commit()
		finally:
			db.close()


def _now_ms() -> int:
	return int(time.time() * 1000)


def _to_ms(expiry: Expiry) -> float:
	if isinstance(expiry, timedelta):
		return expiry.total_seconds() * 1000
	return float(expiry)


class ExpiringStore:
	def __init__(
		self,
		backend: Optional[KeyValueBackend] = None,
		*,
		expiry: Expiry = timedelta(hours=12),
		clock: Callable[[], int] = _now_ms,
	) -> None:
		self.backend = backend if backend is not None else MemoryBackend()
		self.expiry_ms = _to_ms(expiry)
		self._clock = clock

	def put(self, key: str, value: Any) -> None:
		# Fire-and-forget: a failed write is logged, never raised
		try:
			record = {"value": value, "timestamp": self._clock()}
			self.backend.set_item(key, json.dumps(record))
		except Exception as err:
			logger.warning("Failed to persist %s: %s", key, err)

	def now(self) -> int:
		return self._clock()

	def get(self, key: str, expiry: Optional[Expiry] = None) -> Any:
		record = self.get_record(key, expiry)
		return record.value if record is not None else None

	def get_record(self, key: str, expiry: Optional[Expiry] = None) -> Optional[StoredRecord[Any]]:
		"""Like get, but returns the whole envelope so callers can see its age."""
		try:
			raw = self.backend.get_item(key)
		except Exception as err:
			# Unreadable storage is a miss
			logger.warning("Failed to read %s: %s", key, err)
			return None
		if not raw:
			return None
		try:
			record = StoredRecord[Any].model_validate_json(raw)
		except ValidationError as err:
			logger.info("Discarding unreadable entry %s: %s", key, err.errors()[0].get("msg"))
			self.remove(key)
			return None
		limit = self.expiry_ms if expiry is None else _to_ms(expiry)
		if self._clock() - record.timestamp > limit:
			self.remove(key)
			return None
		return record

	def remove(self, key: str) -> None:
		try:
			self.backend.remove_item(key)
		except Exception as err:
			logger.warning("Failed to remove %s: %s", key, err)


def build_backend(cfg: Settings) -> KeyValueBackend:
	kind = (cfg.storage_backend or "memory").lower()
	if kind == "memory":
		return MemoryBackend()
	if kind == "file":
		return FileBackend(cfg.storage_path)
	if kind == "database":
		from . import db
		if db.engine is None:
			db.init_engine(cfg.database_url or db.DATABASE_URL)
		return DatabaseBackend(db.SessionLocal)
	raise ValueError(f"storage_backend must be one of memory, file, database (got {cfg.storage_backend!r})")


def build_store(cfg: Settings) -> ExpiringStore:
	return ExpiringStore(build_backend(cfg), expiry=timedelta(seconds=cfg.storage_expiry_seconds))
