"""Local JSON-file metadata store.

One file per installation holds every record::

    {
      "myrepo-auth": {"project": "myrepo", "topic": "auth", ...},
      ...
    }

Writes are atomic: every mutation reads the whole file, composes the new
state in a temporary file in the same directory, then renames it onto the
canonical path.  A concurrent reader sees either the old or the new file,
never a partial one.

There is no cross-process lock.  Two writers racing on different keys can
lose one update (last writer wins on the whole file).  Updates are rare and
user-triggered, so this is accepted rather than masked.
"""

from __future__ import annotations

import contextlib
import json
import os
import shutil
import stat
import tempfile
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from worktree_agent.core.models.record import FIELD_ALIASES, WorkspaceRecord
from worktree_agent.core.store.base import StoreCorruptedError

_RECORDS = TypeAdapter(dict[str, WorkspaceRecord])


def _normalize_path(path: str | Path) -> str:
    return os.path.normpath(os.path.expanduser(str(path)))


class JsonMetadataStore:
    """JSON-file implementation of the MetadataStore protocol.

    A missing file reads as an empty store and is created on first write.
    A malformed file raises ``StoreCorruptedError`` on every access; mutating
    calls first copy it aside so the next successful write cannot destroy it.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(os.path.expanduser(str(path)))

    @property
    def path(self) -> Path:
        return self._path

    # -- Read ------------------------------------------------------------------

    def get(self, workspace_id: str) -> WorkspaceRecord | None:
        return self._load().get(workspace_id)

    def get_field(self, workspace_id: str, field: str) -> str:
        record = self.get(workspace_id)
        if record is None:
            return ""
        data = record.model_dump(mode="json")
        value = data.get(FIELD_ALIASES.get(field, field))
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def contains(self, workspace_id: str) -> bool:
        return workspace_id in self._load()

    def list_ids(self) -> list[str]:
        return list(self._load())

    def items(self) -> list[tuple[str, WorkspaceRecord]]:
        return list(self._load().items())

    def __iter__(self) -> Iterator[str]:
        return iter(self.list_ids())

    def count(self) -> int:
        return len(self._load())

    def find_by_path(self, path: str | Path) -> str | None:
        target = _normalize_path(path)
        for workspace_id, record in self._load().items():
            if _normalize_path(record.working_copy_path) == target:
                return workspace_id
        return None

    def find_by_project(self, project: str) -> list[str]:
        return [wid for wid, record in self._load().items() if record.project == project]

    # -- Write -----------------------------------------------------------------

    def put(self, workspace_id: str, record: WorkspaceRecord) -> None:
        records = self._load_for_write()
        records[workspace_id] = record
        self._save(records)
        logger.info("Store: saved {}", workspace_id)

    def delete(self, workspace_id: str) -> None:
        if not self._path.exists():
            return
        records = self._load_for_write()
        if records.pop(workspace_id, None) is None:
            return
        self._save(records)
        logger.info("Store: deleted {}", workspace_id)

    def update_description(self, workspace_id: str, description: str) -> bool:
        """Set the free-text description.  Returns False if the record is absent."""
        records = self._load_for_write()
        record = records.get(workspace_id)
        if record is None:
            return False
        records[workspace_id] = record.model_copy(update={"description": description})
        self._save(records)
        logger.info("Store: description updated for {}", workspace_id)
        return True

    # -- Backup ----------------------------------------------------------------

    def backup(self, suffix: str = "backup") -> Path | None:
        """Copy the store file aside as ``<file>.<suffix>-YYYYmmdd-HHMMSS``.

        Returns the backup path, or ``None`` when there is nothing to back up.
        """
        if not self._path.exists():
            return None
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        target = self._path.with_name(f"{self._path.name}.{suffix}-{stamp}")
        shutil.copy2(self._path, target)
        logger.info("Store: backup written to {}", target)
        return target

    def restore(self, backup_path: str | Path) -> bool:
        """Replace the store with a backup.  False if the backup does not exist."""
        source = Path(os.path.expanduser(str(backup_path)))
        if not source.is_file():
            return False
        _atomic_write(self._path, source.read_text(encoding="utf-8"))
        logger.info("Store: restored from {}", source)
        return True

    def reset(self) -> Path | None:
        """Back up whatever is on disk (corrupt or not) and start empty."""
        backup_path = self.backup()
        self._save({})
        logger.warning("Store: reset to empty (previous contents at {})", backup_path)
        return backup_path

    # -- Internals -------------------------------------------------------------

    def _load(self) -> dict[str, WorkspaceRecord]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            raise StoreCorruptedError(self._path, str(exc)) from exc
        return self._parse(raw)

    def _parse(self, raw: str) -> dict[str, WorkspaceRecord]:
        if not raw.strip():
            raise StoreCorruptedError(self._path, "file is empty")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreCorruptedError(self._path, f"invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreCorruptedError(self._path, f"expected an object, got {type(data).__name__}")
        try:
            return _RECORDS.validate_python(data)
        except ValidationError as exc:
            raise StoreCorruptedError(self._path, f"invalid record: {exc.errors()[0]['msg']}") from exc

    def _load_for_write(self) -> dict[str, WorkspaceRecord]:
        """Load before a mutation, saving a copy of a suspect file first."""
        try:
            return self._load()
        except StoreCorruptedError as exc:
            backup_path = self.backup(suffix="corrupt")
            logger.warning("Store: {} is corrupted, copy saved to {}", self._path, backup_path)
            raise StoreCorruptedError(self._path, exc.reason, backup_path) from exc

    def _save(self, records: dict[str, WorkspaceRecord]) -> None:
        data = _RECORDS.dump_json(records, indent=2).decode("utf-8")
        _atomic_write(self._path, data + "\n")


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + fsync + rename.

    Ensures readers never see a partially-written file and a crash leaves
    either the old or the new contents.  The temp file is created in the
    same directory so ``os.replace`` is atomic on POSIX, and takes the mode
    of the file it replaces (``mkstemp`` would otherwise leave it 0600).
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = _target_mode(path)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
            f.flush()
            os.fchmod(f.fileno(), mode)
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _target_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask
