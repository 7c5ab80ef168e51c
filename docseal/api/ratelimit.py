"""Failed secret-key attempt limiter shared by the signing routes.

Module-level singleton, chosen the same way as the other backing stores:
Redis when REDIS_URL is configured (block state shared by every API
instance), otherwise a process-local limiter.

The limiter is consulted by SigningWorkflow.sign_with_secret_key, not by a
route dependency: only a WRONG key counts against the signer, which is
not known until the key has been checked.
"""

from __future__ import annotations

import logging

from docseal.core.config import SETTINGS
from docseal.db.redis import redis_pool
from docseal.services.rate_limiter import (
    AttemptLimitConfig,
    AttemptLimiter,
    InMemoryAttemptLimiter,
    RedisAttemptLimiter,
)

logger = logging.getLogger(__name__)

attempt_config = AttemptLimitConfig(
    max_attempts=SETTINGS.rate_limit_max_attempts,
    block_seconds=SETTINGS.rate_limit_block_seconds,
)

attempt_limiter: AttemptLimiter
if redis_pool is not None:
    attempt_limiter = RedisAttemptLimiter(redis_pool, attempt_config)
else:
    attempt_limiter = InMemoryAttemptLimiter(attempt_config)


def get_attempt_limiter() -> AttemptLimiter:
    return attempt_limiter
