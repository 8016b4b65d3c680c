"""Persistence port for the memory document, with file and Redis backends.

A store only moves one whole JSON document. Reads never raise: a missing or
unparsable document, or one without ``weights``, loads as None and the caller
falls back to the default state. Any other document is decoded leniently:
null or ill-typed record lists become empty, invalid records and fields are
dropped, and everything else is kept. Writes raise on any storage failure.

Saves are compare-and-swap on ``revision``: when ``expected_revision`` is
given and the persisted revision differs, ``MemoryConflictError`` is raised
and nothing is written. An unusable document is copied aside before the
first save replaces it.
"""

import asyncio
import json
import os
import tempfile
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from loguru import logger
from pydantic import BaseModel, ValidationError
from redis.asyncio import Redis
from redis.exceptions import WatchError

from src.memory.exceptions import MemoryConflictError
from src.memory.models import (
    MemoryState,
    OutcomeRecord,
    RulePerformance,
    RuleWeights,
    UserFeedback,
    UserReputation,
)

RECORD_LISTS: dict[str, type[BaseModel]] = {
    "outcomes": OutcomeRecord,
    "feedbacks": UserFeedback,
    "userReputations": UserReputation,
    "rulePerformance": RulePerformance,
}


class MemoryStore(Protocol):
    # Why the last load fell back to defaults; None when it did not.
    last_load_error: str | None

    async def load(self) -> MemoryState | None: ...

    async def save(self, state: MemoryState, *, expected_revision: int | None = None) -> None: ...

    async def close(self) -> None: ...


def _validate_dropping_fields(model: type[BaseModel], data: dict[str, Any], label: str) -> Any:
    """Validate ``data``; on failure retry once without the offending keys."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        bad = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
        logger.warning(f"[MEMORY] Dropping invalid {label} fields: {', '.join(sorted(bad))}")
        return model.model_validate({k: v for k, v in data.items() if k not in bad})


def _valid_records(data: dict[str, Any], key: str, model: type[BaseModel]) -> list[Any]:
    raw = data.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(f"[MEMORY] {key} is not a list, treating as empty")
        return []
    records = []
    for item in raw:
        try:
            records.append(model.model_validate(item))
        except ValidationError:
            continue
    if len(records) < len(raw):
        logger.warning(f"[MEMORY] Dropped {len(raw) - len(records)} invalid {key} entries")
    return records


def decode_document(raw: str | bytes | None) -> tuple[MemoryState | None, str | None]:
    """Decode a stored document.

    Returns ``(state, problem)``. ``state`` is None when nothing usable is
    stored; ``problem`` says why when a document exists but cannot be used.
    """
    if not raw:
        return None, None
    try:
        data = json.loads(raw)
    except ValueError as e:
        logger.warning(f"[MEMORY] Unparsable memory document, using defaults: {e}")
        return None, f"unparsable document: {e}"
    if not isinstance(data, dict) or not isinstance(data.get("weights"), dict) or not data["weights"]:
        logger.warning("[MEMORY] Memory document has no weights, using defaults")
        return None, "document has no weights"

    document: dict[str, Any] = {
        k: v for k, v in data.items() if k in ("version", "revision", "updatedAt")
    }
    document["weights"] = _validate_dropping_fields(RuleWeights, data["weights"], "weights")
    for key, model in RECORD_LISTS.items():
        document[key] = _valid_records(data, key, model)
    return _validate_dropping_fields(MemoryState, document, "document"), None


def parse_document(raw: str | bytes | None) -> MemoryState | None:
    """Decode a stored document, None if absent or unusable."""
    return decode_document(raw)[0]


def serialize_document(state: MemoryState) -> str:
    return json.dumps(state.to_json_dict(), indent=2, ensure_ascii=False)


def _persisted_revision(state: MemoryState | None) -> int:
    return state.revision if state is not None else 0


def _corrupt_suffix() -> str:
    return "corrupt-" + datetime.now(UTC).strftime("%Y%m%dT%H%M%S%fZ")


class JsonFileMemoryStore:
    """Memory document in a local JSON file, replaced atomically on save.

    The revision check and the replace happen under a process-local lock, so
    CAS is exact within one process and best-effort across processes.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self.last_load_error: str | None = None

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> MemoryState | None:
        return await asyncio.to_thread(self._load_sync)

    async def save(self, state: MemoryState, *, expected_revision: int | None = None) -> None:
        await asyncio.to_thread(self._save_sync, state, expected_revision)

    async def close(self) -> None:
        return None

    def _read_raw(self) -> str | None:
        try:
            return self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"[MEMORY] No memory file at {self._path}, starting fresh")
            return None
        except OSError as e:
            logger.warning(f"[MEMORY] Cannot read {self._path}: {e}")
            raise

    def _load_sync(self) -> MemoryState | None:
        try:
            raw = self._read_raw()
        except OSError as e:
            self.last_load_error = f"cannot read {self._path}: {e}"
            return None
        state, self.last_load_error = decode_document(raw)
        return state

    def _save_sync(self, state: MemoryState, expected_revision: int | None) -> None:
        payload = serialize_document(state)
        with self._lock:
            raw = self._read_raw()
            current, problem = decode_document(raw)
            if expected_revision is not None:
                actual = _persisted_revision(current)
                if actual != expected_revision:
                    raise MemoryConflictError(expected_revision, actual)
            if problem is not None:
                aside = self._path.with_name(f"{self._path.name}.{_corrupt_suffix()}")
                os.replace(self._path, aside)
                logger.warning(f"[MEMORY] Unusable memory file moved to {aside}")

            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise


class RedisMemoryStore:
    """Memory document under a single Redis key, CAS via WATCH/MULTI."""

    def __init__(self, redis: Redis, key: str) -> None:
        self._redis = redis
        self._key = key
        self.last_load_error: str | None = None

    async def load(self) -> MemoryState | None:
        try:
            raw = await self._redis.get(self._key)
        except Exception as e:
            logger.warning(f"[MEMORY] Redis read failed for {self._key}, using defaults: {e}")
            self.last_load_error = f"redis read failed: {e}"
            return None
        state, self.last_load_error = decode_document(raw)
        return state

    async def save(self, state: MemoryState, *, expected_revision: int | None = None) -> None:
        payload = serialize_document(state)
        if expected_revision is None:
            await self._redis.set(self._key, payload)
            return

        async with self._redis.pipeline(transaction=True) as pipe:
            await pipe.watch(self._key)
            raw = await pipe.get(self._key)
            current, problem = decode_document(raw)
            actual = _persisted_revision(current)
            if actual != expected_revision:
                await pipe.unwatch()
                raise MemoryConflictError(expected_revision, actual)
            pipe.multi()
            if problem is not None:
                aside = f"{self._key}:{_corrupt_suffix()}"
                pipe.set(aside, raw)
                logger.warning(f"[MEMORY] Unusable memory document copied to {aside}")
            pipe.set(self._key, payload)
            try:
                await pipe.execute()
            except WatchError as e:
                raise MemoryConflictError(expected_revision, None) from e

    async def close(self) -> None:
        await self._redis.aclose()


def build_memory_store(backend: str, *, path: Path, redis_url: str, redis_key: str) -> MemoryStore:
    if backend == "file":
        return JsonFileMemoryStore(path)
    if backend == "redis":
        return RedisMemoryStore(Redis.from_url(redis_url, decode_responses=True), redis_key)
    raise ValueError(f"Unknown memory backend: {backend!r}")
