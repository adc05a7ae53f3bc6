"""GitHub commit-activity client.

API docs: https://docs.github.com/en/rest
Unauthenticated: 60 requests/hour, 10 searches/minute. Set GITHUB_TOKEN to
raise the limits; it is never required for correctness.
"""

from __future__ import annotations

import logging
import math
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from ..errors import ProviderRejected, ProviderUnreachable, UnsupportedOperation
from ..fallback import FallbackChain
from ..models import CommitActivityStats, Provider, ProviderResult, StatsMethod, StrategyOutcome
from ..normalization import count_field

logger = logging.getLogger(__name__)

API_BASE = "https://api.github.com"
SEARCH_ACCEPT = "application/vnd.github.cloak-preview+json"
USER_AGENT = "room-stats-mcp"
EVENTS_PER_PAGE = 100

WEEK_WINDOW = timedelta(days=7)
MONTH_WINDOW = timedelta(days=30)

# Estimation heuristic. The constants are behavioural, keep them as they are.
COMMITS_PER_REPO = 8
MAX_ACTIVITY_MULTIPLIER = 3.0
IDLE_ACTIVITY_MULTIPLIER = 0.5
MAX_AGE_MULTIPLIER = 2.0
RECENT_ACTIVITY_FLOOR = 10


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def bucket_push_events(events: list[dict], now: datetime) -> tuple[int, int, int]:
    """Count commits in push events: (all recent, this week, this month).

    Windows are inclusive of their lower bound. An event without an embedded
    commit list counts as one commit.
    """
    week_ago = now - WEEK_WINDOW
    month_ago = now - MONTH_WINDOW
    recent = week = month = 0

    for event in events:
        if not isinstance(event, dict) or event.get("type") != "PushEvent":
            continue
        payload = event.get("payload") or {}
        commits = payload.get("commits") if isinstance(payload, dict) else None
        count = len(commits) if isinstance(commits, list) and commits else 1

        recent += count
        created = _parse_timestamp(event.get("created_at"))
        if created is None:
            continue
        if created >= week_ago:
            week += count
        if created >= month_ago:
            month += count
    return recent, week, month


def estimate_total_commits(public_repos: int, recent_activity: int, account_age_years: float) -> int:
    """Heuristic total when no authoritative count is available."""
    base_estimate = public_repos * COMMITS_PER_REPO
    if recent_activity > 0:
        activity_multiplier = min(MAX_ACTIVITY_MULTIPLIER, recent_activity / 10)
    else:
        activity_multiplier = IDLE_ACTIVITY_MULTIPLIER
    age_multiplier = min(MAX_AGE_MULTIPLIER, account_age_years / 2)
    return max(
        recent_activity * RECENT_ACTIVITY_FLOOR,
        math.floor(base_estimate * activity_multiplier * age_multiplier),
    )


def account_age_years(created_at: Any, now: datetime) -> float:
    """Account age in years, never below one."""
    created = _parse_timestamp(created_at)
    if created is None:
        return 1.0
    return max(1.0, (now - created).total_seconds() / (365 * 24 * 3600))


class GitHubClient:
    """Stateless commit-activity adapter.

    Every public method resolves to a structured value. The HTTP client is
    created per call, so one instance can be shared by concurrent callers.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        api_base: str = API_BASE,
    ):
        self._token = token if token is not None else os.environ.get("GITHUB_TOKEN", "")
        self._timeout = timeout or httpx.Timeout(15.0, connect=5.0)
        self._transport = transport
        self._api_base = api_base.rstrip("/")
        self._chain = FallbackChain(
            Provider.GITHUB,
            [("accurate", self.fetch_accurate), ("estimate", self.fetch_estimate)],
        )

    def _headers(self, accept: Optional[str] = None) -> dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        if accept:
            headers["Accept"] = accept
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._api_base,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _get_json(self, client: httpx.AsyncClient, path: str, label: str, **kwargs) -> Any:
        try:
            response = await client.get(path, **kwargs)
        except httpx.InvalidURL as exc:
            raise ProviderRejected(label, f"{label} rejected the username: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ProviderUnreachable(label, str(exc) or exc.__class__.__name__) from exc
        if not response.is_success:
            raise ProviderRejected(label, f"{label} failed: {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderRejected(label, f"{label} returned invalid JSON") from exc

    async def _fetch_profile(self, client: httpx.AsyncClient, username: str) -> dict:
        profile = await self._get_json(client, f"/users/{username}", "Profile API", headers=self._headers())
        if not isinstance(profile, dict):
            raise ProviderRejected("Profile API", "Profile API returned an unexpected payload")
        return profile

    async def _fetch_events(self, client: httpx.AsyncClient, username: str) -> list[dict]:
        """Recent public events. A failing feed counts as no activity."""
        try:
            events = await self._get_json(
                client,
                f"/users/{username}/events/public",
                "Events API",
                params={"per_page": EVENTS_PER_PAGE},
                headers=self._headers(),
            )
        except (ProviderUnreachable, ProviderRejected) as exc:
            logger.warning("GitHub events feed unavailable for %s: %s", username, exc)
            return []
        return events if isinstance(events, list) else []

    async def fetch_accurate(self, username: str) -> StrategyOutcome:
        """Authoritative total from the commit search endpoint."""
        now = datetime.now(timezone.utc)
        async with self._client() as client:
            try:
                search = await self._get_json(
                    client,
                    "/search/commits",
                    "Search API",
                    params={"q": f"author:{username}", "per_page": 1},
                    headers=self._headers(SEARCH_ACCEPT),
                )
                total = count_field(search, "total_count", default=None) if isinstance(search, dict) else None
                if total is None:
                    raise UnsupportedOperation(f"Search API returned no total for {username}")
                profile = await self._fetch_profile(client, username)
            except (ProviderUnreachable, ProviderRejected, UnsupportedOperation) as exc:
                logger.warning("GitHub accurate stats unavailable for %s: %s", username, exc)
                return StrategyOutcome.unsupported(str(exc))

            events = await self._fetch_events(client, username)

        _, week, month = bucket_push_events(events, now)
        logger.info("GitHub accurate stats for %s: %d total, %d week, %d month", username, total, week, month)
        return StrategyOutcome.ok(CommitActivityStats(
            total_commits=total,
            weekly_commits=week,
            monthly_commits=month,
            public_repos=count_field(profile, "public_repos"),
            method=StatsMethod.ACCURATE,
            last_updated=now,
        ))

    async def fetch_estimate(self, username: str) -> StrategyOutcome:
        """Heuristic total from repository count, account age and recent pushes."""
        now = datetime.now(timezone.utc)
        async with self._client() as client:
            try:
                profile = await self._fetch_profile(client, username)
            except (ProviderUnreachable, ProviderRejected) as exc:
                logger.warning("GitHub estimate unavailable for %s: %s", username, exc)
                return StrategyOutcome.unsupported(str(exc))
            events = await self._fetch_events(client, username)

        recent, week, month = bucket_push_events(events, now)
        public_repos = count_field(profile, "public_repos")
        age_years = account_age_years(profile.get("created_at"), now)
        total = estimate_total_commits(public_repos, recent, age_years)

        return StrategyOutcome.ok(CommitActivityStats(
            total_commits=total,
            weekly_commits=week,
            monthly_commits=month,
            public_repos=public_repos,
            method=StatsMethod.ESTIMATE,
            last_updated=now,
        ))

    async def user_exists(self, username: str) -> bool:
        """Lightweight existence check used before acquisition."""
        if not username:
            return False
        async with self._client() as client:
            try:
                response = await client.get(f"/users/{username}", headers=self._headers())
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.warning("Error validating GitHub username %s: %s", username, exc)
                return False
        return response.is_success

    async def fetch_stats(self, username: str) -> ProviderResult:
        """Run accurate, then estimate."""
        return await self._chain.run(username)
