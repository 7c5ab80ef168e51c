from __future__ import annotations

import asyncio

from docseal.services.rate_limiter import AttemptLimitConfig, InMemoryAttemptLimiter


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _limiter(clock: FakeClock | None = None, **overrides) -> InMemoryAttemptLimiter:
    return InMemoryAttemptLimiter(AttemptLimitConfig(**overrides), clock=clock or FakeClock())


def _fail(limiter: InMemoryAttemptLimiter, key: str, times: int):
    async def go():
        result = None
        for _ in range(times):
            result = await limiter.record_attempt(key, success=False)
        return result

    return asyncio.run(go())


def test_defaults_are_five_attempts_fifteen_minutes() -> None:
    config = AttemptLimitConfig()
    assert config.max_attempts == 5
    assert config.block_seconds == 900


def test_unknown_identifier_is_clear() -> None:
    limiter = _limiter()
    assert asyncio.run(limiter.is_blocked("sign:a")).blocked is False
    assert asyncio.run(limiter.remaining_attempts("sign:a")) == 5


def test_four_failures_leave_one_attempt() -> None:
    limiter = _limiter()
    result = _fail(limiter, "sign:a", 4)
    assert result.blocked is False
    assert result.attempts == 4
    assert asyncio.run(limiter.remaining_attempts("sign:a")) == 1
    assert asyncio.run(limiter.is_blocked("sign:a")).blocked is False


def test_fifth_failure_blocks_for_the_window() -> None:
    limiter = _limiter()
    _fail(limiter, "sign:a", 4)
    result = _fail(limiter, "sign:a", 1)
    assert result.blocked is True
    assert result.remaining_seconds == 900

    status = asyncio.run(limiter.is_blocked("sign:a"))
    assert status.blocked is True
    assert status.remaining_seconds == 900


def test_remaining_seconds_counts_down() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)
    _fail(limiter, "sign:a", 5)
    clock.advance(600.5)
    status = asyncio.run(limiter.is_blocked("sign:a"))
    assert status.blocked is True
    assert status.remaining_seconds == 300


def test_block_lapses_and_entry_is_purged() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)
    _fail(limiter, "sign:a", 5)
    clock.advance(900)

    assert asyncio.run(limiter.is_blocked("sign:a")).blocked is False
    assert "sign:a" not in limiter._entries
    assert asyncio.run(limiter.remaining_attempts("sign:a")) == 5


def test_success_resets_failures() -> None:
    limiter = _limiter()
    _fail(limiter, "sign:a", 4)
    asyncio.run(limiter.record_attempt("sign:a", success=True))
    assert asyncio.run(limiter.remaining_attempts("sign:a")) == 5

    result = _fail(limiter, "sign:a", 4)
    assert result.blocked is False


def test_identifiers_are_independent() -> None:
    limiter = _limiter()
    _fail(limiter, "sign:a", 5)
    assert asyncio.run(limiter.is_blocked("sign:b")).blocked is False


def test_clear_lifts_a_block() -> None:
    limiter = _limiter()
    _fail(limiter, "sign:a", 5)
    asyncio.run(limiter.clear("sign:a"))
    assert asyncio.run(limiter.is_blocked("sign:a")).blocked is False
    assert asyncio.run(limiter.remaining_attempts("sign:a")) == 5


def test_custom_config_is_honoured() -> None:
    limiter = _limiter(max_attempts=2, block_seconds=30)
    result = _fail(limiter, "sign:a", 2)
    assert result.blocked is True
    assert result.remaining_seconds == 30


# ---- reservations ----


def test_reservation_is_counted_as_a_failure() -> None:
    limiter = _limiter()
    reservation = asyncio.run(limiter.reserve_attempt("sign:a"))
    assert reservation.granted is True
    assert reservation.attempts == 1
    assert asyncio.run(limiter.remaining_attempts("sign:a")) == 4


def test_reservations_are_refused_once_blocked() -> None:
    limiter = _limiter()

    async def reserve(times: int):
        return [await limiter.reserve_attempt("sign:a") for _ in range(times)]

    reservations = asyncio.run(reserve(8))
    assert [r.granted for r in reservations] == [True] * 5 + [False] * 3
    assert reservations[4].blocked is True
    assert all(r.remaining_seconds == 900 for r in reservations[4:])
    assert limiter._entries["sign:a"].attempts == 5


def test_success_after_reservation_forgives_it() -> None:
    limiter = _limiter()
    asyncio.run(limiter.reserve_attempt("sign:a"))
    asyncio.run(limiter.record_attempt("sign:a", success=True))
    assert asyncio.run(limiter.remaining_attempts("sign:a")) == 5


def test_reservation_after_lapsed_block_starts_fresh() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)
    _fail(limiter, "sign:a", 5)
    clock.advance(900)
    reservation = asyncio.run(limiter.reserve_attempt("sign:a"))
    assert reservation.granted is True
    assert reservation.attempts == 1
