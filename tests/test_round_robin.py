"""
Tests for round robin generation.
"""
from collections import Counter
from dataclasses import replace

import pytest

from tournament_engine.errors import InvalidInput
from tournament_engine.models import BracketSegment
from tournament_engine.round_robin import (
    calculate_round_robin_stats,
    generate_round_robin,
    validate_round_robin,
)


class TestEvenField:
    """Tests for an even number of teams."""

    def test_four_teams(self, four_teams):
        """Three rounds of two matches with the top seed fixed."""
        matches = generate_round_robin(four_teams)
        assert len(matches) == 6
        rounds = {r: [m.teams for m in matches if m.round_number == r] for r in (1, 2, 3)}
        assert rounds[1] == [(1, 4), (2, 3)]
        assert rounds[2] == [(1, 3), (4, 2)]
        assert rounds[3] == [(1, 2), (3, 4)]

    def test_group_segment(self, four_teams):
        """Matches are GROUP without a group id and ready to play."""
        matches = generate_round_robin(four_teams)
        assert all(m.segment is BracketSegment.GROUP and m.group_id is None for m in matches)
        assert all(m.is_ready and not m.parent_match_ids for m in matches)

    def test_valid(self, eight_teams):
        """Every pair once, nobody twice in a round."""
        assert validate_round_robin(generate_round_robin(eight_teams), eight_teams) == []


class TestOddField:
    """Tests for an odd number of teams."""

    def test_five_teams(self, teams_factory):
        """Ten matches over five rounds, two per round."""
        teams = teams_factory(5)
        matches = generate_round_robin(teams)
        assert len(matches) == 10
        per_round = Counter(m.round_number for m in matches)
        assert sorted(per_round) == [1, 2, 3, 4, 5]
        assert set(per_round.values()) == {2}
        assert validate_round_robin(matches, teams) == []

    def test_each_team_sits_out_once(self, teams_factory):
        """With five teams everyone rests exactly one round."""
        teams = teams_factory(5)
        matches = generate_round_robin(teams)
        for team in teams:
            rounds_played = {m.round_number for m in matches if m.involves(team.team_id)}
            assert len(rounds_played) == 4


class TestHelpers:
    """Tests for stats and validation helpers."""

    def test_stats(self):
        """Five teams: five rounds, one bye per round."""
        stats = calculate_round_robin_stats(5)
        assert stats['rounds'] == 5
        assert stats['total_matches'] == 10
        assert stats['matches_per_round'] == 2
        assert stats['byes_per_round'] == 1

    def test_validate_detects_duplicate(self, four_teams):
        """A repeated pairing is reported."""
        matches = generate_round_robin(four_teams)
        matches.append(replace(matches[0], match_id=99, round_number=9))
        errors = validate_round_robin(matches, four_teams)
        assert any("twice" in e for e in errors)

    def test_validate_detects_missing(self, four_teams):
        """A dropped pairing is reported."""
        matches = generate_round_robin(four_teams)[1:]
        assert any("missing" in e for e in validate_round_robin(matches, four_teams))

    def test_too_few_teams(self, teams_factory):
        """Three teams is invalid input."""
        with pytest.raises(InvalidInput):
            generate_round_robin(teams_factory(3))


@pytest.mark.slow
class TestSweep:
    """Round robin properties across field sizes."""

    @pytest.mark.parametrize("count", range(4, 21))
    def test_properties(self, teams_factory, count):
        """n(n-1)/2 matches, floor(n/2) per round, participants - 1 rounds."""
        teams = teams_factory(count)
        matches = generate_round_robin(teams)
        assert len(matches) == count * (count - 1) // 2
        assert validate_round_robin(matches, teams) == []
        per_round = Counter(m.round_number for m in matches)
        assert len(per_round) == count - 1 + count % 2
        assert set(per_round.values()) == {count // 2}
