"""Session persistence: key-value backends and the SessionStore on top of them."""

import asyncio
import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError as SchemaError

from argument_ace.errors import StaleWriteError, StoreError
from argument_ace.models import DebateSession
from argument_ace.serialization import session_from_record, session_to_record

logger = logging.getLogger(__name__)

SESSIONS = "sessions"
SHARED = "shared"
TIMERS = "timers"

_SAFE_KEY_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_.")


def is_valid_key(key: str) -> bool:
    """Keys double as file names, so only a safe character set is allowed."""
    return bool(key) and set(key) <= _SAFE_KEY_CHARS and not key.startswith(".")


class KeyValueStore(ABC):
    """Namespaced async record store. Missing keys are ``None``, never errors."""

    @abstractmethod
    async def put(self, namespace: str, key: str, record: dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def delete(self, namespace: str, key: str) -> bool:
        """Remove a record. Returns False when there was nothing to remove."""
        ...

    @abstractmethod
    async def list_all(self, namespace: str) -> list[dict[str, Any]]:
        ...


class InMemoryStore(KeyValueStore):
    """Process-local store. Contents vanish on restart."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, str]] = {}

    async def put(self, namespace: str, key: str, record: dict[str, Any]) -> None:
        # Stored as JSON text so callers never share mutable state with the store
        self._data.setdefault(namespace, {})[key] = json.dumps(record)

    async def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        raw = self._data.get(namespace, {}).get(key)
        return json.loads(raw) if raw is not None else None

    async def delete(self, namespace: str, key: str) -> bool:
        return self._data.get(namespace, {}).pop(key, None) is not None

    async def list_all(self, namespace: str) -> list[dict[str, Any]]:
        return [json.loads(raw) for raw in self._data.get(namespace, {}).values()]


class JsonFileStore(KeyValueStore):
    """One JSON file per record under ``<root>/<namespace>/<key>.json``."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def _path(self, namespace: str, key: str) -> Path:
        if not is_valid_key(key):
            raise ValueError(f"Invalid record key: {key!r}")
        return self._root / namespace / f"{key}.json"

    def _write(self, path: Path, record: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(record, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(path)

    def _read(self, path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StoreError(f"Corrupt record {path}: {exc}") from exc

    def _unlink(self, path: Path) -> bool:
        if not path.exists():
            return False
        path.unlink()
        return True

    def _read_all(self, namespace: str) -> list[dict[str, Any]]:
        folder = self._root / namespace
        if not folder.is_dir():
            return []
        records = []
        for path in sorted(folder.glob("*.json")):
            try:
                records.append(json.loads(path.read_text(encoding="utf-8")))
            except json.JSONDecodeError as exc:
                logger.warning("Skipping corrupt record %s: %s", path, exc)
        return records

    async def put(self, namespace: str, key: str, record: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, self._path(namespace, key), record)

    async def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        try:
            path = self._path(namespace, key)
        except ValueError:
            return None
        return await asyncio.to_thread(self._read, path)

    async def delete(self, namespace: str, key: str) -> bool:
        try:
            path = self._path(namespace, key)
        except ValueError:
            return False
        return await asyncio.to_thread(self._unlink, path)

    async def list_all(self, namespace: str) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._read_all, namespace)


def share_url(origin: str, share_id: str) -> str:
    return f"{origin.rstrip('/')}/share/{share_id}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Create/update/load/delete private sessions and publish public snapshots.

    Private records live in the ``sessions`` namespace keyed by ``id``;
    published copies live in ``shared`` keyed by ``share_id`` and are never
    reachable through :meth:`load`.
    """

    def __init__(self, backend: KeyValueStore, share_origin: str) -> None:
        self._backend = backend
        self._origin = share_origin

    def _decode(self, record: dict[str, Any], where: str) -> DebateSession:
        try:
            return session_from_record(record)
        except SchemaError as exc:
            raise StoreError(f"Unreadable session record in {where}: {exc}") from exc

    async def save(self, session: DebateSession) -> DebateSession:
        """Persist ``session`` and return it with ``id`` and ``updated_at`` set.

        Create vs. update is decided by whether a record with ``session.id``
        exists. An update keeps the stored share id and public URL.
        """
        existing = await self._backend.get(SESSIONS, session.id) if session.id else None
        if existing is None:
            saved = replace(session, id=session.id or uuid.uuid4().hex, updated_at=_utcnow())
            logger.info("Created session %s (%r)", saved.id, saved.topic)
        else:
            stored = self._decode(existing, SESSIONS)
            saved = replace(
                session,
                updated_at=_utcnow(),
                share_id=stored.share_id or session.share_id,
                public_url=stored.public_url or session.public_url,
            )
            logger.info("Updated session %s (%r)", saved.id, saved.topic)
        await self._backend.put(SESSIONS, saved.id, session_to_record(saved))
        return saved

    async def load(self, session_id: str) -> DebateSession | None:
        record = await self._backend.get(SESSIONS, session_id)
        if record is None:
            logger.debug("Session %s not found", session_id)
            return None
        return self._decode(record, SESSIONS)

    async def list_sessions(self) -> list[DebateSession]:
        """All private sessions, most recently saved first."""
        sessions = []
        for record in await self._backend.list_all(SESSIONS):
            try:
                sessions.append(self._decode(record, SESSIONS))
            except StoreError as exc:
                logger.warning("Skipping session: %s", exc)
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(sessions, key=lambda s: s.updated_at or epoch, reverse=True)

    async def delete(self, session_id: str) -> bool:
        deleted = await self._backend.delete(SESSIONS, session_id)
        logger.info("Delete session %s: %s", session_id, "removed" if deleted else "not found")
        return deleted

    async def delete_all(self) -> int:
        records = await self._backend.list_all(SESSIONS)
        count = 0
        for record in records:
            if record.get("id") and await self._backend.delete(SESSIONS, record["id"]):
                count += 1
        logger.info("Deleted %d sessions", count)
        return count

    async def publish(self, session: DebateSession) -> tuple[str, str]:
        """Store a public snapshot of ``session`` and return ``(share_id, public_url)``.

        Raises:
            StaleWriteError: If the session (or its stored record) already has
                a share id. The existing share is left untouched.
        """
        if session.share_id:
            raise StaleWriteError(f"Session already published as {session.share_id}")
        stored = await self.load(session.id) if session.id else None
        if stored is not None and stored.share_id:
            raise StaleWriteError(f"Session {session.id} already published as {stored.share_id}")

        share_id = f"shared_{uuid.uuid4().hex}"
        public_url = share_url(self._origin, share_id)
        if stored is not None:
            # Mark the private record first so a repeat publish of this snapshot is refused
            marked = replace(stored, share_id=share_id, public_url=public_url)
            await self._backend.put(SESSIONS, stored.id, session_to_record(marked))
        # The public copy is addressed by its share id only
        snapshot = replace(
            session, id=share_id, share_id=share_id, public_url=public_url, updated_at=_utcnow()
        )
        await self._backend.put(SHARED, share_id, session_to_record(snapshot))
        logger.info("Published session %s as %s", session.id or session.key, share_id)
        return share_id, public_url

    async def fetch_public(self, share_id: str) -> DebateSession | None:
        record = await self._backend.get(SHARED, share_id)
        if record is None:
            logger.info("Shared session %s not found", share_id)
            return None
        return self._decode(record, SHARED)
