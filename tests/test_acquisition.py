"""Tests for per-participant stats acquisition."""

from conftest import StubGitHub, StubLeetCode, commit_stats, make_participant, problem_profile, run
from room_stats.core.acquisition import StatsAcquirer
from room_stats.core.models import ParticipantStats, ProblemSolvingStats, Provider, StatsMethod


def _acquirer(github=None, leetcode=None):
    return StatsAcquirer(github or StubGitHub(), leetcode or StubLeetCode())


def test_fetches_every_linked_provider(github_stub, leetcode_stub):
    participant = make_participant("u1", github="octocat", leetcode="lc_alice")
    updates, warnings = run(StatsAcquirer(github_stub, leetcode_stub).refresh_stats(participant))

    assert warnings == []
    assert updates[Provider.GITHUB].total_commits == 100
    leetcode = updates[Provider.LEETCODE]
    assert (leetcode.easy_solved, leetcode.medium_solved, leetcode.hard_solved, leetcode.total) == (10, 5, 2, 17)
    assert leetcode.acceptance_rate == 55.5


def test_unlinked_providers_are_skipped(github_stub, leetcode_stub):
    participant = make_participant("u1", leetcode="lc_alice")
    updates, _ = run(StatsAcquirer(github_stub, leetcode_stub).refresh_stats(participant))
    assert list(updates) == [Provider.LEETCODE]
    assert github_stub.calls == []


def test_provider_filter(github_stub, leetcode_stub):
    participant = make_participant("u1", github="octocat", leetcode="lc_alice")
    updates, _ = run(StatsAcquirer(github_stub, leetcode_stub).refresh_stats(participant, [Provider.GITHUB]))
    assert list(updates) == [Provider.GITHUB]
    assert leetcode_stub.calls == []


class TestGitHubFallbacks:
    def test_unknown_user(self):
        participant = make_participant("u1", github="ghost")
        updates, warnings = run(_acquirer(github=StubGitHub(missing={"ghost"})).refresh_stats(participant))

        stats = updates[Provider.GITHUB]
        assert (stats.total_commits, stats.weekly_commits, stats.monthly_commits) == (50, 5, 20)
        assert stats.method is StatsMethod.ESTIMATE
        assert warnings == ['GitHub username "ghost" not found - using estimated stats']

    def test_provider_unavailable(self):
        participant = make_participant("u1", github="octocat")
        updates, warnings = run(_acquirer(github=StubGitHub(failing={"octocat"})).refresh_stats(participant))

        stats = updates[Provider.GITHUB]
        assert (stats.total_commits, stats.weekly_commits, stats.monthly_commits) == (75, 8, 30)
        assert warnings == ["GitHub API temporarily unavailable - using estimated stats"]

    def test_adapter_exception_is_contained(self):
        participant = make_participant("u1", github="octocat")
        updates, warnings = run(_acquirer(github=StubGitHub(raising={"octocat"})).refresh_stats(participant))
        assert updates[Provider.GITHUB].total_commits == 75
        assert len(warnings) == 1

    def test_estimate_floor_replaces_zero_fields(self):
        estimate = commit_stats(total=0, weekly=3, monthly=0, method=StatsMethod.ESTIMATE)
        participant = make_participant("u1", github="octocat")
        updates, warnings = run(_acquirer(github=StubGitHub(stats={"octocat": estimate})).refresh_stats(participant))

        stats = updates[Provider.GITHUB]
        assert (stats.total_commits, stats.weekly_commits, stats.monthly_commits) == (100, 3, 40)
        assert warnings == []

    def test_accurate_zero_is_kept(self):
        accurate = commit_stats(total=0, weekly=0, monthly=0)
        participant = make_participant("u1", github="octocat")
        updates, _ = run(_acquirer(github=StubGitHub(stats={"octocat": accurate})).refresh_stats(participant))
        assert updates[Provider.GITHUB].total_commits == 0


class TestLeetCodeFallbacks:
    def test_error_record(self):
        participant = make_participant("u1", leetcode="ghost")
        updates, warnings = run(_acquirer().refresh_stats(participant))

        stats = updates[Provider.LEETCODE]
        assert (stats.easy_solved, stats.medium_solved, stats.hard_solved, stats.total) == (10, 5, 2, 17)
        assert warnings == ["LeetCode API error - using estimated stats"]

    def test_adapter_exception(self):
        participant = make_participant("u1", leetcode="lc_alice")
        leetcode = StubLeetCode(profiles={"lc_alice": problem_profile()}, raising={"lc_alice"})
        updates, warnings = run(_acquirer(leetcode=leetcode).refresh_stats(participant))

        stats = updates[Provider.LEETCODE]
        assert (stats.easy_solved, stats.medium_solved, stats.hard_solved, stats.total) == (8, 4, 1, 13)
        assert warnings == ["LeetCode API temporarily unavailable - using estimated stats"]


class TestLastKnownGood:
    def test_previous_snapshot_is_kept_on_failure(self):
        previous = ProblemSolvingStats(easy_solved=70, medium_solved=30, hard_solved=9, total=109)
        participant = make_participant("u1", github="octocat", leetcode="ghost")
        participant.stats = ParticipantStats(leetcode=previous, github=commit_stats(300, 1, 2))

        github = StubGitHub(failing={"octocat"})
        updates, warnings = run(_acquirer(github=github).refresh_stats(participant))

        assert updates == {}
        assert len(warnings) == 2
        participant.apply_stats(updates)
        assert participant.stats.leetcode == previous
        assert participant.stats.github.total_commits == 300

    def test_success_replaces_previous_snapshot(self, github_stub):
        participant = make_participant("u1", github="octocat")
        participant.stats = ParticipantStats(github=commit_stats(5, 5, 5))
        updates, _ = run(_acquirer(github=github_stub).refresh_stats(participant))
        participant.apply_stats(updates)
        assert participant.stats.github.total_commits == 100
        assert participant.stats_last_updated is not None
