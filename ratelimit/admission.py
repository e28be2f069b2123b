"""Admission gate run by the HTTP layer before any model/search/fetch work starts."""

from dataclasses import dataclass, replace

from ratelimit.counter_store import StoreError
from ratelimit.limiter import RateLimitConfig, RateLimiter, RateLimitResult
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdmissionDecision:
    admitted: bool
    result: RateLimitResult
    recorded: bool = False
    reason: str = "ok"
    retry_after_ms: int = 0


class AdmissionGate:
    """
    check -> (deny | record) for one user.

    A denied request is never recorded, so rejected traffic does not extend its own ban.
    Callers with their own pre-flight checks run check() first and record() only once
    the request is really going to start work; admit() does both in one go.
    """

    def __init__(self, limiter: RateLimiter, config: RateLimitConfig, wait_for_slot: bool = False):
        self.limiter = limiter
        self.config = config
        self.wait_for_slot = wait_for_slot

    async def check(self, user_id: str) -> AdmissionDecision:
        """Decide admission without counting the request."""
        user_config = self.config.for_user(user_id)
        result = await self.limiter.check_limit(user_config)

        if not result.allowed and self.wait_for_slot:
            logger.info(
                "Rate limited, waiting for next window",
                extra={"extra_fields": {"user_id": user_id, "reset_time": result.reset_time}},
            )
            if await result.retry():
                result = await self.limiter.check_limit(user_config)

        if not result.allowed:
            logger.warning(
                "Request rejected by rate limiter",
                extra={
                    "extra_fields": {
                        "user_id": user_id,
                        "total_hits": result.total_hits,
                        "reset_time": result.reset_time,
                    }
                },
            )
            return AdmissionDecision(
                admitted=False,
                result=result,
                reason="rate_limited",
                retry_after_ms=max(0, result.reset_time - self.limiter.clock.now_ms()),
            )

        return AdmissionDecision(admitted=True, result=result)

    async def record(self, user_id: str, decision: AdmissionDecision) -> AdmissionDecision:
        """
        Count an admitted request against the user's window.

        Raises:
            ValueError: If the decision was a denial
        """
        if not decision.admitted:
            raise ValueError("Denied requests are never recorded")

        user_config = self.config.for_user(user_id)
        try:
            await self.limiter.record_hit(user_config.window_ms, user_config.key_prefix)
        except StoreError as e:
            # Outage degrades to permissive; the hit is simply not counted
            logger.warning(
                "Admitting request without recording hit",
                extra={"extra_fields": {"user_id": user_id, "error": str(e)}},
            )
            return replace(decision, recorded=False, reason="store_error")

        return replace(decision, recorded=True)

    async def admit(self, user_id: str) -> AdmissionDecision:
        decision = await self.check(user_id)
        if not decision.admitted:
            return decision
        return await self.record(user_id, decision)
