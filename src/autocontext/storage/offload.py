"""In-process and local-file ContextOffLoader implementations."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from autocontext.engine.messages import deserialize_msg_list, serialize_msg_list
from autocontext.exceptions import ContextOffloadError, ContextReloadError
from autocontext.storage.repositories import ContextOffLoader

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autocontext.models.message import Msg

logger = logging.getLogger(__name__)


class InMemoryContextOffLoader(ContextOffLoader):
    """Dict-backed off-loader scoped to one instance.

    Each AutoContextMemory gets its own instance, so records never leak
    between memories in the same process. Off-loaders returned by
    :meth:`for_session` share this instance's store under their own
    session key.
    """

    def __init__(self, session_id: str | None = None) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, dict[str, tuple[Msg, ...]]] = {}
        self._session_key = session_id or ""

    @property
    def session_id(self) -> str | None:
        return self._session_key or None

    @property
    def _records(self) -> dict[str, tuple[Msg, ...]]:
        return self._sessions.setdefault(self._session_key, {})

    def offload(self, uuid: str, messages: Sequence[Msg]) -> None:
        with self._lock:
            self._records[uuid] = tuple(messages)

    def reload(self, uuid: str) -> list[Msg]:
        with self._lock:
            return list(self._records.get(uuid, ()))

    def clear(self, uuid: str) -> None:
        with self._lock:
            self._records.pop(uuid, None)

    def list_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._records)

    def for_session(self, session_id: str) -> InMemoryContextOffLoader:
        scoped = InMemoryContextOffLoader(session_id)
        scoped._lock = self._lock
        scoped._sessions = self._sessions
        return scoped


class LocalFileContextOffLoader(ContextOffLoader):
    """Stores each record as ``<uuid>.json`` under a base directory.

    With a *session_id*, records go into ``<base_dir>/<session_id>/`` so
    several sessions can share one base directory.
    """

    SUFFIX = ".json"

    def __init__(self, base_dir: str | Path, session_id: str | None = None) -> None:
        self._base = Path(base_dir)
        self._session_id = session_id or None
        if self._session_id is None:
            self._dir = self._base
        elif _is_safe_name(self._session_id):
            self._dir = self._base / self._session_id
        else:
            raise ValueError(f"session_id cannot be used as a directory name: {session_id!r}")

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def for_session(self, session_id: str) -> LocalFileContextOffLoader:
        if session_id == self._session_id:
            return self
        return LocalFileContextOffLoader(self._base, session_id)

    def _path(self, uuid: str) -> Path:
        if not _is_safe_name(uuid):
            raise ContextOffloadError(uuid, "uuid cannot be used as a file name")
        return self._dir / f"{uuid}{self.SUFFIX}"

    def offload(self, uuid: str, messages: Sequence[Msg]) -> None:
        path = self._path(uuid)
        payload = json.dumps(serialize_msg_list(messages), ensure_ascii=False)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise ContextOffloadError(uuid, f"cannot write {path}: {exc}") from exc
        logger.debug("Offloaded %d message(s) to %s", len(messages), path)

    def reload(self, uuid: str) -> list[Msg]:
        path = self._path(uuid)
        if not path.exists():
            return []
        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ContextReloadError(uuid, exc) from exc
        except OSError as exc:
            raise ContextOffloadError(uuid, f"cannot read {path}: {exc}") from exc

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(
                    f"expected a JSON list of messages, got {type(data).__name__}"
                )
            return deserialize_msg_list(data)
        except (ValueError, ValidationError) as exc:
            raise ContextReloadError(uuid, exc) from exc

    def clear(self, uuid: str) -> None:
        path = self._path(uuid)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise ContextOffloadError(uuid, f"cannot delete {path}: {exc}") from exc

    def list_ids(self) -> list[str]:
        if not self._dir.is_dir():
            return []
        return sorted(p.stem for p in self._dir.glob(f"*{self.SUFFIX}") if p.is_file())


def _is_safe_name(value: str) -> bool:
    """False for names that would escape the offload directory."""
    return bool(value) and value not in (".", "..") and "/" not in value and "\\" not in value
