"""
Disk-backed cache store.

Every entry is a single JSON record file under the cache root (see
``diskbox.cache.paths`` for the layout). Expiry is checked lazily on read;
a Sweeper reclaims records nobody reads again. The same ``inspect`` path
serves reads and sweeps, so a record is judged expired or corrupt in
exactly one place.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import secrets
from pathlib import Path
from typing import Any

from diskbox.cache.base import CacheProtocol
from diskbox.cache.codec import decode_envelope, encode_envelope
from diskbox.cache.paths import resolve_path
from diskbox.cache.sweeper import SweepReport, Sweeper
from diskbox.config import DEFAULT_CLEAN_EVERY_MS, Settings, StoreOptions
from diskbox.exceptions import (
    CacheIOError,
    ConfigurationError,
    CorruptionError,
    NotConnectedError,
    ValidationError,
)
from diskbox.logging import get_logger, log_context
from diskbox.types import (
    CachedItem,
    CacheKey,
    Envelope,
    RecordStatus,
    now_ms,
    segment_name_error,
)

logger = get_logger(__name__)

_PROBE_BODY = b"okey-dokey"


class DiskStore(CacheProtocol):
    """Cache connection storing one file per entry under a root directory.

    The root must already exist; start() checks it is a writable
    directory before the store becomes ready. There is no locking: the
    last write to a key wins, and concurrent deletes of the same stale
    record are harmless.
    """

    def __init__(
        self,
        cache_path: str | Path | None,
        clean_every: int = DEFAULT_CLEAN_EVERY_MS,
    ) -> None:
        """Initialize the store.

        Args:
            cache_path: Root directory of the cache.
            clean_every: Sweep interval in milliseconds, 0 to disable.

        Raises:
            ConfigurationError: If cache_path is missing or clean_every is
                not a non-negative integer.
        """
        self.options = StoreOptions.build(cache_path=cache_path, clean_every=clean_every)
        self.root = self.options.cache_path
        self._ready = False
        self._reclaims: set[asyncio.Task[None]] = set()
        self.sweeper = Sweeper(self, self.options.clean_every)

    @classmethod
    def from_settings(cls, settings: Settings) -> DiskStore:
        options = settings.store_options()
        return cls(options.cache_path, clean_every=options.clean_every)

    async def start(self) -> None:
        """Check the root and start sweeping.

        Raises:
            ConfigurationError: If the root is missing, not a directory, or
                a probe file cannot be written, read back and removed. The
                store stays not ready.
        """
        if self._ready:
            return

        if not self.root.exists():
            raise ConfigurationError(
                "cache_path does not exist", context={"cache_path": str(self.root)}
            )
        if not self.root.is_dir():
            raise ConfigurationError(
                "cache_path is not a directory", context={"cache_path": str(self.root)}
            )

        self._probe_disk_access()

        self._ready = True
        logger.info(
            "Disk cache started",
            cache_path=str(self.root),
            clean_every=self.options.clean_every,
        )
        self.sweeper.start()

    def _probe_disk_access(self) -> None:
        probe = self.root / f"probe.{secrets.token_hex(4)}.txt"
        try:
            probe.write_bytes(_PROBE_BODY)
            body = probe.read_bytes()
            probe.unlink()
        except OSError as e:
            with contextlib.suppress(OSError):
                probe.unlink(missing_ok=True)
            raise ConfigurationError(
                f"Disk access check failed: {e.strerror or e}",
                context={"cache_path": str(self.root)},
            ) from e

        if body != _PROBE_BODY:
            raise ConfigurationError(
                "Disk access check read back different bytes",
                context={"cache_path": str(self.root)},
            )

    def stop(self) -> None:
        """Stop sweeping and mark the store not ready. Idempotent."""
        self.sweeper.stop()
        if self._ready:
            logger.info("Disk cache stopped", cache_path=str(self.root))
        self._ready = False

    def is_ready(self) -> bool:
        return self._ready

    def validate_segment_name(self, name: str) -> ValidationError | None:
        """Return an error for an empty or NUL-containing name, else None."""
        return segment_name_error(name)

    def storage_path(self, key: CacheKey | dict[str, Any]) -> Path:
        """Record file path for a key."""
        cache_key = CacheKey.coerce(key)
        return resolve_path(self.root, cache_key.segment, cache_key.id)

    def _require_ready(self) -> None:
        if not self._ready:
            raise NotConnectedError("Connection not started")

    async def get(self, key: CacheKey | dict[str, Any]) -> CachedItem | None:
        """Get a live entry.

        Returns None when the record is absent, expired, corrupt or was
        written for a different key whose id digest collides with this one.

        Raises:
            NotConnectedError: If the store is not started.
            ValidationError: If the key is malformed.
            CacheIOError: If the record exists but cannot be read.
        """
        self._require_ready()
        cache_key = CacheKey.coerce(key)

        with log_context(segment=cache_key.segment, operation="get"):
            path = resolve_path(self.root, cache_key.segment, cache_key.id)
            _, cached = await self.inspect(path, cache_key)
            return cached

    async def inspect(
        self,
        path: Path,
        key: CacheKey | None = None,
    ) -> tuple[RecordStatus, CachedItem | None]:
        """Read one record file and apply expiry and corruption handling.

        Corrupt records are deleted before returning. Expired records are
        handed to a background task for deletion; a failure there is only
        logged. When ``key`` is given, a live record stored under another
        key is reported as FOREIGN and left in place.

        Raises:
            CacheIOError: For read failures other than a missing file.
        """
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return RecordStatus.MISSING, None
        except OSError as e:
            raise CacheIOError.from_os_error("read", path, e) from e

        try:
            envelope = decode_envelope(data)
        except CorruptionError as e:
            logger.warning("Removing corrupt cache record", path=str(path), reason=str(e))
            self._unlink_quietly(path)
            return RecordStatus.CORRUPT, None

        now = now_ms()
        if not envelope.is_live(now):
            self._schedule_reclaim(path)
            return RecordStatus.EXPIRED, None

        if key is not None and envelope.key != key:
            logger.debug(
                "Record belongs to a colliding key",
                path=str(path),
                stored_id=envelope.key.id,
            )
            return RecordStatus.FOREIGN, None

        return RecordStatus.HIT, CachedItem(
            key=envelope.key,
            item=envelope.item,
            stored=envelope.stored,
            ttl=envelope.remaining(now),
        )

    async def set(self, key: CacheKey | dict[str, Any], value: Any, ttl: int) -> None:
        """Store ``value`` under ``key`` for ``ttl`` milliseconds.

        A non-positive ttl stores nothing and removes any existing record
        for the key. Otherwise the record replaces whatever is at the path.

        Raises:
            NotConnectedError: If the store is not started.
            ValidationError: If the key or ttl is malformed.
            SerializationError: If the value cannot be encoded.
            CacheIOError: If the record cannot be written.
        """
        self._require_ready()
        cache_key = CacheKey.coerce(key)
        if not isinstance(ttl, int) or isinstance(ttl, bool):
            raise ValidationError("ttl must be an integer", context={"field": "ttl", "value": ttl})

        with log_context(segment=cache_key.segment, operation="set"):
            path = resolve_path(self.root, cache_key.segment, cache_key.id)

            if ttl <= 0:
                logger.debug("Non-positive ttl, not storing", id=cache_key.id, ttl=ttl)
                self._remove(path)
                return

            envelope = Envelope(key=cache_key, item=value, stored=now_ms(), ttl=ttl)
            body = encode_envelope(envelope)

            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                self._write_atomic(path, body)
            except OSError as e:
                raise CacheIOError.from_os_error("write", path, e) from e

    @staticmethod
    def _write_atomic(path: Path, body: bytes) -> None:
        # Temp name never matches the record pattern, so sweeps ignore it
        tmp = path.with_name(f".{path.name}.{secrets.token_hex(6)}.tmp")
        try:
            tmp.write_bytes(body)
            os.replace(tmp, path)
        except OSError:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise

    async def drop(self, key: CacheKey | dict[str, Any]) -> None:
        """Remove an entry. A missing entry is not an error.

        Raises:
            NotConnectedError: If the store is not started.
            ValidationError: If the key is malformed.
            CacheIOError: If the record exists but cannot be removed.
        """
        self._require_ready()
        cache_key = CacheKey.coerce(key)

        with log_context(segment=cache_key.segment, operation="drop"):
            self._remove(resolve_path(self.root, cache_key.segment, cache_key.id))

    def _remove(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise CacheIOError.from_os_error("delete", path, e) from e

    def _unlink_quietly(self, path: Path) -> bool:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(
                "Failed to remove stale cache record",
                path=str(path),
                errno=e.errno,
                error=e.strerror or str(e),
            )
            return False
        return True

    def _schedule_reclaim(self, path: Path) -> None:
        task = asyncio.get_running_loop().create_task(self._reclaim(path))
        self._reclaims.add(task)
        task.add_done_callback(self._reclaims.discard)

    async def _reclaim(self, path: Path) -> None:
        if self._unlink_quietly(path):
            logger.debug("Reclaimed expired cache record", path=str(path))

    async def drain(self) -> None:
        """Wait for scheduled background deletions to finish."""
        while self._reclaims:
            await asyncio.gather(*list(self._reclaims))

    async def sweep(self) -> SweepReport:
        """Run one sweep of the whole root now."""
        return await self.sweeper.run_once()
