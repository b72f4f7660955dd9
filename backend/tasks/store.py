# tasks/store.py
"""
Flat JSON file persistence.

Each collection is one JSON document that is read whole and overwritten
whole. Writes go through a sibling temp file and `os.replace`, so readers
see either the old or the new document.

Thread-safety:
- one re-entrant lock per resolved file path, shared by every store
  instance in the process
- callers wrap read-modify-write cycles in `with store.locked():`
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from django.conf import settings

from .models import Task

logger = logging.getLogger(__name__)

TASKS_FILENAME = 'tasks.json'

_locks: Dict[Path, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    with _locks_guard:
        lock = _locks.get(path)
        if lock is None:
            lock = threading.RLock()
            _locks[path] = lock
        return lock


def data_dir() -> Path:
    return Path(getattr(settings, 'AUTOMATION_DATA_DIR'))


class StoreReadError(Exception):
    """Raised by strict reads when a data file exists but cannot be used."""

    pass


class JsonFileStore:
    """
    One JSON document on disk.

    `default_factory` builds the empty document; it is written when the file
    does not exist yet and returned whenever the file cannot be read.
    """

    def __init__(self, path: str | Path, default_factory: Callable[[], Any] = list) -> None:
        self.path = Path(path).resolve()
        self.default_factory = default_factory
        self._lock = _lock_for(self.path)
        self.ensure()

    def ensure(self) -> None:
        """Create the parent directory and an empty document if missing."""
        with self._lock:
            if self.path.exists():
                return
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
            except OSError:
                logger.exception(f"Could not create data directory {self.path.parent}")
                return
            if self.write(self.default_factory()):
                logger.info(f"Initialized data file {self.path}")

    @contextlib.contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    def read(self, strict: bool = False) -> Any:
        """
        Load the whole document. A missing file reads as the default.

        An unreadable or corrupt file also reads as the default, unless
        `strict` is set: read-modify-write callers pass it so a damaged
        file is never overwritten with an empty collection.
        """
        try:
            with self.path.open('r', encoding='utf-8') as handle:
                return json.load(handle)
        except FileNotFoundError:
            logger.warning(f"Data file {self.path} is missing; using empty default.")
        except (OSError, ValueError) as e:
            logger.error(f"Error reading {self.path}: {e}")
            if strict:
                raise StoreReadError(f"{self.path}: {e}") from e
        return self.default_factory()

    def read_list(self, strict: bool = False) -> List[Any]:
        payload = self.read(strict=strict)
        if not isinstance(payload, list):
            logger.error(f"{self.path} does not hold a list; ignoring its content.")
            if strict:
                raise StoreReadError(f"{self.path} does not hold a list")
            return []
        return payload

    def write(self, data: Any) -> bool:
        """Overwrite the whole document. Returns False instead of raising."""
        tmp_name = None
        try:
            with self._lock:
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self.path.name}.", suffix='.tmp', dir=str(self.path.parent)
                )
                with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                    json.dump(data, handle, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self.path)
                tmp_name = None
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing {self.path}: {e}")
            return False
        finally:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)


class TaskStore(JsonFileStore):
    """The task collection, newest task first."""

    def __init__(self, path: str | Path | None = None) -> None:
        super().__init__(path or data_dir() / TASKS_FILENAME, default_factory=list)

    def load_tasks(self, strict: bool = False) -> List[Task]:
        return [Task.from_dict(item) for item in self.read_list(strict=strict) if isinstance(item, dict)]

    def save_tasks(self, tasks: List[Task]) -> bool:
        return self.write([task.to_dict() for task in tasks])

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.load_tasks():
            if task.id == task_id:
                return task
        return None
