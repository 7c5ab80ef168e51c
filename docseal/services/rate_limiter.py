"""Failed-attempt limiter guarding secret-key checks.

STATE MACHINE (per identifier)
-------------------------------
  Clear ──failure──▶ Tracking(1) ──failure──▶ … ──▶ Tracking(n)
  Tracking(max-1) ──failure──▶ Blocked(until = now + window)
  Tracking / Blocked ──success──▶ Clear       (one success forgives all)
  Blocked ──now ≥ until, observed by is_blocked──▶ Clear
  any ──clear()──▶ Clear                       (administrative)

RESERVATIONS
-------------
A caller that must do slow work between "am I blocked?" and "record the
outcome" (an Argon2 verify) uses reserve_attempt().  It checks the block
and counts a failure in one atomic step, before the work starts; a later
success clears the count.  A burst of concurrent guesses therefore gets at
most max_attempts reservations, and every guess after the block is refused
without being checked.

Unlike a request-rate limiter this only counts FAILURES: a signer who
types the right key every time is never throttled, and one who guesses
wrong five times in a row is locked out for the whole window.

BACKENDS
---------
The limiter is a Protocol with two implementations:

  InMemoryAttemptLimiter: a dict guarded by a lock.  Per process only;
    the clock is injectable so tests can step through the window.

  RedisAttemptLimiter: one Redis hash per identifier.  All API instances
    share block state.  Failures and reservations go through one Lua
    script, so two concurrent failures for the same signer always count
    as two.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from docseal.core.metrics import ATTEMPT_BLOCKS

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AttemptLimitConfig:
    """max_attempts consecutive failures trigger a block of block_seconds."""

    max_attempts: int = 5
    block_seconds: int = 900


@dataclass(frozen=True, slots=True)
class BlockStatus:
    blocked: bool
    remaining_seconds: int | None = None


@dataclass(frozen=True, slots=True)
class AttemptResult:
    blocked: bool
    attempts: int | None = None
    remaining_seconds: int | None = None


@dataclass(frozen=True, slots=True)
class Reservation:
    """Outcome of reserve_attempt.

    ``granted`` is False when the identifier was already blocked: nothing
    was counted and the caller must not run its check.  A granted
    reservation has already been counted as a failure; ``blocked`` says
    whether that failure started a block.
    """

    granted: bool
    attempts: int = 0
    blocked: bool = False
    remaining_seconds: int | None = None


@dataclass(slots=True)
class RateLimitEntry:
    identifier: str
    attempts: int
    last_attempt_at: float
    blocked_until: float | None = None


@runtime_checkable
class AttemptLimiter(Protocol):
    @property
    def config(self) -> AttemptLimitConfig: ...

    async def is_blocked(self, identifier: str) -> BlockStatus: ...
    async def record_attempt(self, identifier: str, success: bool) -> AttemptResult: ...
    async def reserve_attempt(self, identifier: str) -> Reservation: ...
    async def remaining_attempts(self, identifier: str) -> int: ...
    async def clear(self, identifier: str) -> None: ...


class InMemoryAttemptLimiter:
    """Process-local limiter.  Every read-modify-write holds ``_lock``."""

    def __init__(
        self,
        config: AttemptLimitConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or AttemptLimitConfig()
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    @property
    def config(self) -> AttemptLimitConfig:
        return self._config

    async def is_blocked(self, identifier: str) -> BlockStatus:
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None or entry.blocked_until is None:
                return BlockStatus(blocked=False)

            now = self._clock()
            if now < entry.blocked_until:
                return BlockStatus(
                    blocked=True,
                    remaining_seconds=math.ceil(entry.blocked_until - now),
                )

            # Block lapsed
            del self._entries[identifier]
            return BlockStatus(blocked=False)

    async def record_attempt(self, identifier: str, success: bool) -> AttemptResult:
        with self._lock:
            if success:
                self._entries.pop(identifier, None)
                return AttemptResult(blocked=False)
            return self._count_failure(identifier, self._clock())

    async def reserve_attempt(self, identifier: str) -> Reservation:
        with self._lock:
            now = self._clock()
            entry = self._entries.get(identifier)
            if entry is not None and entry.blocked_until is not None:
                if now < entry.blocked_until:
                    return Reservation(
                        granted=False,
                        attempts=entry.attempts,
                        blocked=True,
                        remaining_seconds=math.ceil(entry.blocked_until - now),
                    )
                del self._entries[identifier]

            result = self._count_failure(identifier, now)
            return Reservation(
                granted=True,
                attempts=result.attempts or 0,
                blocked=result.blocked,
                remaining_seconds=result.remaining_seconds,
            )

    def _count_failure(self, identifier: str, now: float) -> AttemptResult:
        # Caller holds _lock.
        entry = self._entries.get(identifier)
        if entry is None:
            entry = RateLimitEntry(identifier=identifier, attempts=0, last_attempt_at=now)
            self._entries[identifier] = entry

        entry.attempts += 1
        entry.last_attempt_at = now

        if entry.attempts >= self._config.max_attempts:
            entry.blocked_until = now + self._config.block_seconds
            ATTEMPT_BLOCKS.inc()
            logger.warning(
                "Blocked identifier=%s after %d failed attempts",
                identifier,
                entry.attempts,
            )
            return AttemptResult(
                blocked=True,
                attempts=entry.attempts,
                remaining_seconds=self._config.block_seconds,
            )

        return AttemptResult(blocked=False, attempts=entry.attempts)

    async def remaining_attempts(self, identifier: str) -> int:
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return self._config.max_attempts
            return max(0, self._config.max_attempts - entry.attempts)

    async def clear(self, identifier: str) -> None:
        with self._lock:
            self._entries.pop(identifier, None)


class RedisAttemptLimiter:
    """Redis-backed limiter shared by every API instance.

    Key layout: ``attempts:{identifier}`` → hash {attempts, last_attempt,
    blocked_until} with millisecond timestamps.  A blocked key carries a
    TTL equal to the block window, so Redis drops it when the block ends.
    """

    _PREFIX = "attempts:"

    # KEYS[1] = entry key
    # ARGV[1] = max_attempts, ARGV[2] = block window (ms), ARGV[3] = now (ms)
    # ARGV[4] = 1 to refuse (count nothing) while a block is active
    # Returns: {granted, attempts, blocked_until_ms or 0, started_block}
    _ATTEMPT_LUA = """
    local key = KEYS[1]
    local max_attempts = tonumber(ARGV[1])
    local block_ms = tonumber(ARGV[2])
    local now_ms = tonumber(ARGV[3])
    local refuse_blocked = tonumber(ARGV[4])

    if refuse_blocked == 1 then
        local until_ms = tonumber(redis.call('HGET', key, 'blocked_until') or '0')
        if until_ms > now_ms then
            local held = tonumber(redis.call('HGET', key, 'attempts') or '0')
            return {0, held, until_ms, 0}
        end
        if until_ms > 0 then
            redis.call('DEL', key)
        end
    end

    local attempts = redis.call('HINCRBY', key, 'attempts', 1)
    redis.call('HSET', key, 'last_attempt', now_ms)

    if attempts >= max_attempts then
        local until_ms = now_ms + block_ms
        redis.call('HSET', key, 'blocked_until', until_ms)
        redis.call('PEXPIRE', key, block_ms)
        return {1, attempts, until_ms, 1}
    end

    return {1, attempts, 0, 0}
    """

    def __init__(
        self,
        redis_client,
        config: AttemptLimitConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis_client
        self._config = config or AttemptLimitConfig()
        self._clock = clock
        self._script = None

    @property
    def config(self) -> AttemptLimitConfig:
        return self._config

    def _key(self, identifier: str) -> str:
        return f"{self._PREFIX}{identifier}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def _get_script(self):
        if self._script is None:
            self._script = self._redis.register_script(self._ATTEMPT_LUA)
        return self._script

    async def _run_script(self, identifier: str, *, refuse_blocked: bool) -> Reservation:
        script = await self._get_script()
        now_ms = self._now_ms()
        granted, attempts, blocked_until_ms, started_block = await script(
            keys=[self._key(identifier)],
            args=[
                self._config.max_attempts,
                self._config.block_seconds * 1000,
                now_ms,
                1 if refuse_blocked else 0,
            ],
        )
        attempts = int(attempts)
        if not int(granted):
            return Reservation(
                granted=False,
                attempts=attempts,
                blocked=True,
                remaining_seconds=math.ceil((int(blocked_until_ms) - now_ms) / 1000),
            )
        if int(started_block):
            ATTEMPT_BLOCKS.inc()
            logger.warning(
                "Blocked identifier=%s after %d failed attempts", identifier, attempts
            )
            return Reservation(
                granted=True,
                attempts=attempts,
                blocked=True,
                remaining_seconds=self._config.block_seconds,
            )
        return Reservation(granted=True, attempts=attempts)

    async def is_blocked(self, identifier: str) -> BlockStatus:
        raw = await self._redis.hget(self._key(identifier), "blocked_until")
        if raw is None:
            return BlockStatus(blocked=False)

        remaining_ms = int(raw) - self._now_ms()
        if remaining_ms > 0:
            return BlockStatus(blocked=True, remaining_seconds=math.ceil(remaining_ms / 1000))

        await self._redis.delete(self._key(identifier))
        return BlockStatus(blocked=False)

    async def record_attempt(self, identifier: str, success: bool) -> AttemptResult:
        if success:
            await self._redis.delete(self._key(identifier))
            return AttemptResult(blocked=False)

        counted = await self._run_script(identifier, refuse_blocked=False)
        return AttemptResult(
            blocked=counted.blocked,
            attempts=counted.attempts,
            remaining_seconds=counted.remaining_seconds,
        )

    async def reserve_attempt(self, identifier: str) -> Reservation:
        return await self._run_script(identifier, refuse_blocked=True)

    async def remaining_attempts(self, identifier: str) -> int:
        raw = await self._redis.hget(self._key(identifier), "attempts")
        if raw is None:
            return self._config.max_attempts
        return max(0, self._config.max_attempts - int(raw))

    async def clear(self, identifier: str) -> None:
        await self._redis.delete(self._key(identifier))
