"""Ordered fallback over alternative fetch strategies for one provider."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Sequence

import httpx

from .errors import ProviderError
from .models import Provider, ProviderResult, StrategyOutcome

logger = logging.getLogger(__name__)

Strategy = Callable[[str], Awaitable[StrategyOutcome]]


class FallbackChain:
    """Invoke strategies in a fixed order until one returns supported stats.

    The order is frozen at construction. Each strategy runs at most once per
    call; retries are the strategy's own business.
    """

    def __init__(self, provider: Provider, strategies: Sequence[tuple[str, Strategy]]):
        if not strategies:
            raise ValueError("FallbackChain needs at least one strategy")
        self.provider = provider
        self._strategies: tuple[tuple[str, Strategy], ...] = tuple(strategies)

    @property
    def order(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self._strategies)

    async def run(self, username: str) -> ProviderResult:
        reasons: list[str] = []
        for name, strategy in self._strategies:
            try:
                outcome = await strategy(username)
            except (ProviderError, httpx.HTTPError) as exc:
                outcome = StrategyOutcome.unsupported(str(exc))

            if outcome.supported and outcome.stats is not None:
                if reasons:
                    logger.info(
                        "%s stats for %s obtained via %s after: %s",
                        self.provider.value, username, name, "; ".join(reasons),
                    )
                return ProviderResult(
                    provider=self.provider,
                    ok=True,
                    stats=outcome.stats,
                    strategy=name,
                    reasons=reasons,
                )

            reason = outcome.reason or "no data"
            logger.warning("%s strategy %s failed for %s: %s", self.provider.value, name, username, reason)
            reasons.append(f"{name}: {reason}")

        return ProviderResult(provider=self.provider, ok=False, reasons=reasons)
