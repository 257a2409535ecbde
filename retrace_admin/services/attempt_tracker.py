"""
Login attempt tracking with temporary lockout.

Failed admin logins are counted per client key. After MAX_ATTEMPTS failures
inside the attempt window the client is locked out for LOCKOUT_SECONDS, and
every login during the lockout is rejected before the password is checked.
A successful login clears the record.

The window resets on gap: a record whose most recent failure is older than
ATTEMPT_WINDOW_SECONDS is discarded on the next lookup, whatever its count.
There is no background sweep; expired records are reclaimed lazily.

State lives in an AttemptStore. The default in-memory store resets on process
restart; RedisAttemptStore shares state between processes. The tracker is
constructed explicitly and injected into the login route (see main.create_app),
so tests build their own instance with a fake clock.

Thread-safe via threading.Lock around every read-modify-write.
"""

import json
import math
import threading
import time
from dataclasses import dataclass, asdict
from typing import Callable, Dict, NamedTuple, Optional

import redis

from retrace_admin.utils.structured_logger import get_logger

logger = get_logger(__name__)

MAX_ATTEMPTS = 5
ATTEMPT_WINDOW_SECONDS = 5 * 60  # 5 minutes
LOCKOUT_SECONDS = 15 * 60  # 15 minutes
RETRY_AFTER_FALLBACK_SECONDS = 60

REDIS_KEY_PREFIX = "admin_login_attempts:"


@dataclass
class AttemptRecord:
    """Failed-login state for one client key."""

    count: int
    last_attempt_at: float
    locked_until: float = 0.0  # 0.0 means not locked

    def is_locked(self, now: float) -> bool:
        return self.locked_until > now

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw) -> "AttemptRecord":
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
        return cls(
            count=int(data["count"]),
            last_attempt_at=float(data["last_attempt_at"]),
            locked_until=float(data.get("locked_until", 0.0)),
        )


class AdmissionResult(NamedTuple):
    allowed: bool
    remaining_attempts: int
    locked_until: Optional[float] = None


# ==================== Stores ====================

class AttemptStore:
    """Base class for attempt record storage"""

    backend = "base"

    def get(self, key: str) -> Optional[AttemptRecord]:
        raise NotImplementedError

    def put(self, key: str, record: AttemptRecord, ttl_seconds: float) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryAttemptStore(AttemptStore):
    """Process-local storage. Non-durable: cleared on restart.

    ttl_seconds is ignored; expired records stay until the tracker discards
    them on the next lookup for that key.
    """

    backend = "memory"

    def __init__(self):
        self._records: Dict[str, AttemptRecord] = {}

    def get(self, key: str) -> Optional[AttemptRecord]:
        record = self._records.get(key)
        if record is None:
            return None
        # Copy so callers cannot mutate stored state outside the tracker lock
        return AttemptRecord(record.count, record.last_attempt_at, record.locked_until)

    def put(self, key: str, record: AttemptRecord, ttl_seconds: float) -> None:
        self._records[key] = AttemptRecord(record.count, record.last_attempt_at, record.locked_until)

    def delete(self, key: str) -> None:
        self._records.pop(key, None)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: str) -> bool:
        return key in self._records


class RedisAttemptStore(AttemptStore):
    """Redis-backed storage shared by every worker process.

    Records are stored as JSON with an expiry covering the attempt window or
    the lockout, whichever ends later. Concurrent failures from the same client
    on different processes may under- or over-count by the concurrency degree.

    A Redis error on any call is logged and that call is served by the
    in-memory fallback, so a Redis outage weakens sharing between processes
    but never fails a login.
    """

    backend = "redis"

    def __init__(self, redis_url: str = "redis://localhost:6379", client=None):
        self._fallback = InMemoryAttemptStore()
        if client is not None:
            self._redis = client
            return

        # Log connection (mask password)
        safe_url = redis_url.split('@')[-1] if '@' in redis_url else redis_url
        logger.info(f"Connecting to Redis at {safe_url}")
        try:
            self._redis = redis.from_url(redis_url)
            self._redis.ping()
            logger.info("Connected to Redis for login attempt tracking")
        except redis.RedisError as e:
            logger.warning(f"Redis not available, falling back to in-memory attempt store: {e}")
            self._redis = None

    @staticmethod
    def _key(key: str) -> str:
        return f"{REDIS_KEY_PREFIX}{key}"

    def is_healthy(self) -> bool:
        if not self._redis:
            return False
        try:
            self._redis.ping()
            return True
        except redis.RedisError:
            return False

    def _degrade(self, operation: str, key: str, error: Exception) -> None:
        logger.warning(
            f"Redis {operation} failed, using in-memory attempt store for this call: {error}",
            extra={"client_key": key},
        )

    def get(self, key: str) -> Optional[AttemptRecord]:
        if not self._redis:
            return self._fallback.get(key)

        try:
            raw = self._redis.get(self._key(key))
        except redis.RedisError as e:
            self._degrade("get", key, e)
            return self._fallback.get(key)
        if raw is None:
            return None
        try:
            return AttemptRecord.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable login attempt record", extra={"client_key": key})
            self.delete(key)
            return None

    def put(self, key: str, record: AttemptRecord, ttl_seconds: float) -> None:
        if not self._redis:
            return self._fallback.put(key, record, ttl_seconds)
        try:
            self._redis.set(self._key(key), record.to_json(), ex=max(1, math.ceil(ttl_seconds)))
        except redis.RedisError as e:
            self._degrade("set", key, e)
            self._fallback.put(key, record, ttl_seconds)

    def delete(self, key: str) -> None:
        if not self._redis:
            return self._fallback.delete(key)
        try:
            self._redis.delete(self._key(key))
        except redis.RedisError as e:
            self._degrade("delete", key, e)
        self._fallback.delete(key)


def build_attempt_store(config) -> AttemptStore:
    """Redis when the config carries a redis_url, in-memory otherwise."""
    if config.redis_url:
        return RedisAttemptStore(config.redis_url)

    logger.info("Using in-memory login attempt store (set REDIS_URL to share state between processes)")
    return InMemoryAttemptStore()


def attempt_store_info(store: AttemptStore) -> dict:
    """Describe the active attempt store for health output."""
    is_redis = isinstance(store, RedisAttemptStore)
    redis_healthy = is_redis and store.is_healthy()
    return {
        "backend": "redis" if redis_healthy else "memory",
        "redis_connected": redis_healthy,
        "durable": redis_healthy,
    }


# ==================== Tracker ====================

class AttemptTracker:
    """Per-client failed-login counter with lockout."""

    def __init__(
        self,
        store: Optional[AttemptStore] = None,
        max_attempts: int = MAX_ATTEMPTS,
        attempt_window_seconds: float = ATTEMPT_WINDOW_SECONDS,
        lockout_seconds: float = LOCKOUT_SECONDS,
        retry_after_fallback_seconds: int = RETRY_AFTER_FALLBACK_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store if store is not None else InMemoryAttemptStore()
        self.max_attempts = max_attempts
        self.attempt_window_seconds = attempt_window_seconds
        self.lockout_seconds = lockout_seconds
        self.retry_after_fallback_seconds = retry_after_fallback_seconds
        self._clock = clock
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config, store: Optional[AttemptStore] = None, clock: Callable[[], float] = time.time) -> "AttemptTracker":
        return cls(
            store=store if store is not None else build_attempt_store(config),
            max_attempts=config.max_attempts,
            attempt_window_seconds=config.attempt_window_seconds,
            lockout_seconds=config.lockout_seconds,
            retry_after_fallback_seconds=config.retry_after_fallback_seconds,
            clock=clock,
        )

    def _window_elapsed(self, record: AttemptRecord, now: float) -> bool:
        return now - record.last_attempt_at > self.attempt_window_seconds

    def _ttl(self, record: AttemptRecord, now: float) -> float:
        return max(self.attempt_window_seconds, record.locked_until - now)

    def check_admission(self, client_key: str) -> AdmissionResult:
        """Check whether a login attempt from client_key may proceed.

        Returns:
            AdmissionResult(allowed, remaining_attempts, locked_until)
            locked_until is only set while a lockout is active.
        """
        now = self._clock()

        with self._lock:
            record = self.store.get(client_key)
            if record is None:
                return AdmissionResult(True, self.max_attempts)

            if record.is_locked(now):
                return AdmissionResult(False, 0, record.locked_until)

            if self._window_elapsed(record, now):
                self.store.delete(client_key)
                return AdmissionResult(True, self.max_attempts)

            remaining = max(0, self.max_attempts - record.count)
            return AdmissionResult(remaining > 0, remaining)

    def record_outcome(self, client_key: str, success: bool) -> Optional[AttemptRecord]:
        """Record the result of a credential check.

        Success deletes the record. Failure starts a fresh record or advances
        the current one, triggering the lockout when the count reaches
        max_attempts. Returns the stored record (None after success).
        """
        now = self._clock()

        with self._lock:
            if success:
                self.store.delete(client_key)
                return None

            record = self.store.get(client_key)
            if record is None or self._window_elapsed(record, now):
                record = AttemptRecord(count=1, last_attempt_at=now)
            elif record.is_locked(now):
                # Lockouts are never extended by attempts that slipped past admission
                return record
            else:
                record.count = min(record.count + 1, self.max_attempts)
                record.last_attempt_at = now

            if record.count >= self.max_attempts:
                record.locked_until = now + self.lockout_seconds
                logger.warning(
                    "Admin login lockout triggered",
                    extra={
                        "client_key": client_key,
                        "failed_attempts": record.count,
                        "lockout_seconds": self.lockout_seconds,
                    },
                )

            self.store.put(client_key, record, self._ttl(record, now))
            return record

    def retry_after_seconds(self, admission: AdmissionResult) -> int:
        """Seconds a denied client should wait before retrying."""
        if admission.locked_until is None:
            return self.retry_after_fallback_seconds
        return max(1, math.ceil(admission.locked_until - self._clock()))

    def get_record(self, client_key: str) -> Optional[AttemptRecord]:
        with self._lock:
            return self.store.get(client_key)
