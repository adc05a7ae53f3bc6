"""Tests for provider and composite scoring."""

import pytest

from conftest import commit_stats, make_participant, problem_profile
from room_stats.core.models import LeaderboardSettings, ParticipantStats, ProblemSolvingStats
from room_stats.core.scoring import (
    commit_activity_score,
    composite_score,
    correct_commit_total,
    corrected_commit_stats,
    problem_solving_score,
    snapshot_problem_score,
)


def _participant(leetcode=None, github=None):
    participant = make_participant("u1", github="octocat", leetcode="lc_alice")
    participant.stats = ParticipantStats(github=github, leetcode=leetcode)
    return participant


class TestProviderScores:
    def test_problem_solving_profile_score(self):
        assert problem_solving_score(problem_profile(10, 5, 2)) == 35

    def test_snapshot_problem_score(self):
        snapshot = ProblemSolvingStats(easy_solved=10, medium_solved=5, hard_solved=2, total=17)
        assert snapshot_problem_score(snapshot) == 26

    def test_missing_snapshot_scores_zero(self):
        assert snapshot_problem_score(None) == 0
        assert commit_activity_score(None) == 0

    def test_commit_activity_score(self):
        assert commit_activity_score(commit_stats(100, 10, 40)) == 140

    def test_doubled_total_is_corrected(self):
        assert commit_activity_score(commit_stats(1030, 0, 0)) == 565

    def test_neighbouring_totals_pass_through(self):
        assert correct_commit_total(1029) == 1029
        assert correct_commit_total(1031) == 1031
        assert correct_commit_total(565) == 565

    def test_corrected_stats_copy(self):
        stored = commit_stats(1030, 1, 2)
        fixed = corrected_commit_stats(stored)
        assert fixed.total_commits == 565
        assert stored.total_commits == 1030
        assert corrected_commit_stats(commit_stats(12)).total_commits == 12


class TestCompositeScore:
    def test_default_weights(self):
        participant = _participant(
            leetcode=ProblemSolvingStats(easy_solved=10, medium_solved=5, hard_solved=2, total=17),
            github=commit_stats(100, 10, 40),
        )
        assert composite_score(participant, LeaderboardSettings()) == pytest.approx(0.6 * 26 + 0.4 * 140)

    def test_zero_weight_excludes_provider(self):
        participant = _participant(
            leetcode=ProblemSolvingStats(easy_solved=10),
            github=commit_stats(100, 10, 40),
        )
        settings = LeaderboardSettings(weight_leetcode=1.0, weight_github=0.0)
        assert composite_score(participant, settings) == pytest.approx(10)

    def test_missing_stats_contribute_zero(self):
        assert composite_score(_participant(), LeaderboardSettings()) == 0

    def test_weights_need_not_sum_to_one(self):
        participant = _participant(
            leetcode=ProblemSolvingStats(easy_solved=10),
            github=commit_stats(10, 0, 0),
        )
        settings = LeaderboardSettings(weight_leetcode=1.0, weight_github=1.0)
        assert composite_score(participant, settings) == pytest.approx(20)
