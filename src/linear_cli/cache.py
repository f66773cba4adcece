"""Name resolution cache.

Maps human-readable names (team keys, project names) to Linear identifiers so
that repeated commands referencing the same team or project cost at most one
remote lookup per name per TTL window.

The store is a single JSON file mapping ``"kind:name"`` to
``{"identifier": ..., "fetched_at": ...}``. It is loaded once per process,
rewritten atomically (temp file + rename) whenever it changes, and treated as
empty when it is missing, empty or corrupt.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from linear_cli.errors import RemoteUnavailableError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)


class EntityKind(str, Enum):
    TEAM = "team"
    PROJECT = "project"


class CacheEntry(BaseModel):
    """One resolved name. `(kind, key)` is unique within a store."""

    kind: EntityKind
    key: str
    value: str
    fetched_at: datetime

    def is_fresh(self, *, now: datetime, ttl: timedelta) -> bool:
        return now - self.fetched_at <= ttl


class _StoredEntry(BaseModel):
    """On-disk shape of an entry; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    identifier: str = Field(min_length=1)
    fetched_at: datetime


@dataclass(frozen=True, slots=True)
class FetchedEntity:
    """What the remote side reports for a name: its identifier and canonical name."""

    identifier: str
    name: str


@dataclass(frozen=True, slots=True)
class ResolvedName:
    kind: EntityKind
    name: str
    identifier: str
    source: str  # "cache" | "remote" | "stale"

    @property
    def stale(self) -> bool:
        return self.source == "stale"


class EntityFetcher(Protocol):
    def fetch_entity(self, kind: EntityKind, name: str) -> FetchedEntity: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _compound_key(kind: EntityKind, key: str) -> str:
    return f"{kind.value}:{key}"


def atomic_write_text(path: Path, content: str) -> None:
    """Write `content` to `path` via a temp file in the same directory and a rename."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class CacheStore:
    """JSON-file backed mapping of (kind, key) to `CacheEntry`.

    Pass `path=None` for a purely in-memory store.
    """

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entries: dict[tuple[EntityKind, str], CacheEntry] | None = None
        # Entries of kinds this version does not know, written back untouched.
        self._passthrough: dict[str, Any] = {}

    @property
    def path(self) -> Path | None:
        return self._path

    def _load(self) -> dict[tuple[EntityKind, str], CacheEntry]:
        if self._entries is not None:
            return self._entries

        self._entries = {}
        if self._path is None:
            return self._entries

        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self._entries
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(
                "Cache file is unreadable; treating as empty",
                extra={"path": str(self._path), "error": str(e)},
            )
            return self._entries

        if not text.strip():
            return self._entries

        try:
            raw = json.loads(text)
        except (json.JSONDecodeError, RecursionError):
            logger.warning(
                "Cache file is not valid JSON; treating as empty",
                extra={"path": str(self._path)},
            )
            return self._entries

        if not isinstance(raw, dict):
            logger.warning(
                "Cache file has unexpected shape; treating as empty",
                extra={"path": str(self._path)},
            )
            return self._entries

        for compound, item in raw.items():
            kind_name, sep, key = compound.partition(":")
            if not sep or not key:
                continue
            try:
                kind = EntityKind(kind_name)
            except ValueError:
                self._passthrough[compound] = item
                continue
            try:
                stored = _StoredEntry.model_validate(item)
                fetched_at = _as_utc(stored.fetched_at)
            except (PydanticValidationError, OverflowError, ValueError):
                logger.debug("Skipping malformed cache entry", extra={"key": compound})
                continue
            self._entries[(kind, key)] = CacheEntry(
                kind=kind, key=key, value=stored.identifier, fetched_at=fetched_at
            )

        logger.debug(
            "Cache loaded", extra={"path": str(self._path), "entries": len(self._entries)}
        )
        return self._entries

    def get(self, kind: EntityKind, key: str) -> CacheEntry | None:
        return self._load().get((kind, key))

    def put(self, entry: CacheEntry) -> None:
        self._load()[(entry.kind, entry.key)] = entry

    def remove(self, kind: EntityKind, key: str) -> bool:
        return self._load().pop((kind, key), None) is not None

    def entries(self) -> Iterator[CacheEntry]:
        return iter(list(self._load().values()))

    def __len__(self) -> int:
        return len(self._load())

    def save(self) -> None:
        """Persist the whole store. Failures are logged, never raised."""

        if self._path is None:
            return

        payload: dict[str, Any] = dict(self._passthrough)
        for entry in self._load().values():
            payload[_compound_key(entry.kind, entry.key)] = {
                "identifier": entry.value,
                "fetched_at": entry.fetched_at.isoformat(),
            }

        try:
            atomic_write_text(
                self._path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
            )
        except OSError as e:
            logger.warning(
                "Failed to write cache file",
                extra={"path": str(self._path), "error": str(e)},
            )


class ResolutionCache:
    """Cache-aside resolution of team keys and project names to identifiers."""

    def __init__(
        self,
        *,
        store: CacheStore,
        fetcher: EntityFetcher,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._ttl = ttl
        self._clock = clock

    @property
    def store(self) -> CacheStore:
        return self._store

    def resolve(self, kind: EntityKind, name: str) -> ResolvedName:
        """Return the identifier for `name`, fetching it on a miss or once expired.

        Raises:
            ValidationError: `name` is blank.
            NotFoundError: the remote side knows no such entity (propagated as-is).
            RemoteUnavailableError: the fetch failed and nothing is cached for `name`.
        """

        key = name.strip()
        if not key:
            raise ValidationError(f"{kind.value} name must not be empty")

        now = _as_utc(self._clock())
        cached = self._store.get(kind, key)
        if cached is not None and cached.is_fresh(now=now, ttl=self._ttl):
            return ResolvedName(kind=kind, name=key, identifier=cached.value, source="cache")

        try:
            fetched = self._fetcher.fetch_entity(kind, key)
        except RemoteUnavailableError as e:
            if cached is None:
                raise
            logger.warning(
                "Using stale cached identifier; remote lookup failed",
                extra={
                    "kind": kind.value,
                    "name": key,
                    "fetched_at": cached.fetched_at.isoformat(),
                    "error": str(e),
                },
            )
            return ResolvedName(kind=kind, name=key, identifier=cached.value, source="stale")

        self._drop_renamed(kind, fetched, requested=key)
        self._store.put(
            CacheEntry(kind=kind, key=key, value=fetched.identifier, fetched_at=now)
        )
        self._store.save()
        logger.debug(
            "Resolved name remotely",
            extra={"kind": kind.value, "name": key, "identifier": fetched.identifier},
        )
        return ResolvedName(kind=kind, name=key, identifier=fetched.identifier, source="remote")

    def invalidate(self, kind: EntityKind, name: str) -> bool:
        """Forget one entry. Returns whether anything was removed."""

        removed = self._store.remove(kind, name.strip())
        if removed:
            self._store.save()
        return removed

    def _drop_renamed(self, kind: EntityKind, fetched: FetchedEntity, *, requested: str) -> None:
        # Another name pointing at the same identifier, matching neither the
        # canonical nor the requested name, is a name the entity no longer has.
        keep = {fetched.name.casefold(), requested.casefold()}
        for entry in self._store.entries():
            if (
                entry.kind is kind
                and entry.value == fetched.identifier
                and entry.key.casefold() not in keep
            ):
                logger.info(
                    "Dropping cache entry for renamed entity",
                    extra={"kind": kind.value, "old_name": entry.key, "new_name": fetched.name},
                )
                self.invalidate(kind, entry.key)
