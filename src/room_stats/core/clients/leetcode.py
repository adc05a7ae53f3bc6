"""LeetCode problem-solving client.

LeetCode has no public stats API; three community mirrors expose the same
per-user summary under different field names. Each mirror is a complete
alternative, tried in order.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx
from pydantic import ValidationError

from ..errors import AllEndpointsFailed, ProviderRejected, ProviderUnreachable
from ..fallback import FallbackChain
from ..models import Provider, ProblemSolvingProfile, ProviderResult, StrategyOutcome
from ..normalization import normalize_problem_profile

logger = logging.getLogger(__name__)

LEETCODE_API_ENDPOINTS: tuple[str, ...] = (
    "https://leetcode-stats-api.herokuapp.com",
    "https://alfa-leetcode-api.onrender.com",
    "https://leetcode-api-faisalshohag.vercel.app",
)

DIFFICULTIES = ("easy", "medium", "hard")


def error_message(data: Any) -> Optional[str]:
    """Return the failure message if a mirror payload is an error shape."""
    if not isinstance(data, dict):
        return "Unexpected response payload"
    if (
        data.get("status") == "error"
        or data.get("message") == "failed"
        or data.get("errors")
        or data.get("error") is True
    ):
        detail = data.get("message") or data.get("errors") or "User not found"
        if isinstance(detail, list):
            detail = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in detail
            )
        return str(detail)
    return None


class LeetCodeClient:
    """Stateless problem-solving adapter over the mirror endpoints."""

    def __init__(
        self,
        endpoints: Sequence[str] = LEETCODE_API_ENDPOINTS,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._endpoints = tuple(e.rstrip("/") for e in endpoints)
        self._timeout = timeout or httpx.Timeout(10.0, connect=5.0)
        self._transport = transport
        self._chain = FallbackChain(
            Provider.LEETCODE,
            [(base, self._endpoint_strategy(base)) for base in self._endpoints],
        )

    def _endpoint_strategy(self, base: str):
        async def strategy(username: str) -> StrategyOutcome:
            profile = await self._fetch_from(base, username)
            return StrategyOutcome.ok(profile)
        return strategy

    async def _fetch_from(self, base: str, username: str) -> ProblemSolvingProfile:
        logger.debug("Trying LeetCode API: %s/%s", base, username)
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.get(f"{base}/{username}")
            except httpx.InvalidURL as exc:
                raise ProviderRejected(base, f"Invalid username: {exc}") from exc
            except httpx.HTTPError as exc:
                raise ProviderUnreachable(base, str(exc) or exc.__class__.__name__, label="API") from exc

        if not response.is_success:
            raise ProviderRejected(base, f"API responded with status: {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderRejected(base, "API returned invalid JSON") from exc

        message = error_message(data)
        if message is not None:
            raise ProviderRejected(base, message)

        try:
            profile = normalize_problem_profile(data)
        except (TypeError, ValueError, OverflowError, ValidationError) as exc:
            raise ProviderRejected(base, f"API returned an unusable profile: {exc}") from exc
        return profile.model_copy(update={"source": base})

    async def fetch_stats(self, username: str) -> ProviderResult:
        """Run the mirrors in order."""
        return await self._chain.run(username)

    async def get_user_stats(self, username: str) -> ProblemSolvingProfile:
        """Normalized profile, or an error-flagged record with zero counts."""
        result = await self.fetch_stats(username)
        if result.ok and isinstance(result.stats, ProblemSolvingProfile):
            return result.stats

        failure = AllEndpointsFailed(result.reasons)
        logger.error("%s", failure)
        return ProblemSolvingProfile(error=True, message=str(failure))

    async def validate_username(self, username: str) -> bool:
        if not username:
            return False
        stats = await self.get_user_stats(username)
        return not stats.error

    async def difficulty_breakdown(self, username: str) -> dict[str, dict]:
        """Solved / total / percentage per difficulty."""
        stats = await self.get_user_stats(username)
        breakdown = {}
        for difficulty in DIFFICULTIES:
            solved = getattr(stats, f"{difficulty}_solved")
            total = getattr(stats, f"total_{difficulty}")
            breakdown[difficulty] = {
                "solved": solved,
                "total": total,
                "percentage": round(solved / total * 100, 1) if total > 0 else 0,
            }
        return breakdown
