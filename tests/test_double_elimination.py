"""
Tests for double elimination bracket functionality.
"""
import pytest

from tournament_engine.bracket import MatchGraph
from tournament_engine.double_elimination import (
    calculate_double_elimination_stats,
    calculate_losers_bracket_rounds,
    generate_double_elimination,
    get_losers_round_name,
    get_winners_round_name,
)
from tournament_engine.errors import InvalidInput
from tournament_engine.models import BYE, BracketSegment, MatchStatus


class TestRoundNames:
    """Tests for round naming helpers."""

    def test_losers_round_name(self):
        """Last two losers rounds are named, earlier ones numbered."""
        assert get_losers_round_name(4, 4) == "Losers Final"
        assert get_losers_round_name(3, 4) == "Losers Semifinal"
        assert get_losers_round_name(1, 4) == "Losers Round 1"

    def test_winners_round_name(self):
        """Winners rounds carry a prefix."""
        assert get_winners_round_name(2, 8) == "Winners Final"
        assert get_winners_round_name(4, 8) == "Winners Semifinal"
        assert get_winners_round_name(16, 16) == "Winners Round of 16"

    def test_losers_rounds(self):
        """2 * (log2(N) - 1) losers rounds."""
        assert calculate_losers_bracket_rounds(4) == 2
        assert calculate_losers_bracket_rounds(8) == 4
        assert calculate_losers_bracket_rounds(16) == 6

    def test_stats(self):
        """Eight teams: 7 + 6 + 2 match nodes."""
        stats = calculate_double_elimination_stats(8)
        assert stats['winners_matches'] == 7
        assert stats['losers_matches'] == 6
        assert stats['total_matches'] == 15


class TestFourTeams:
    """Tests for the smallest double elimination bracket."""

    def test_layout(self, four_teams):
        """Winners 1-3, losers 4-5, grand final 6, reset 7."""
        by_id = {m.match_id: m for m in generate_double_elimination(four_teams)}
        assert len(by_id) == 7
        assert [by_id[i].segment for i in range(1, 8)] == [
            BracketSegment.WINNERS, BracketSegment.WINNERS, BracketSegment.WINNERS,
            BracketSegment.LOSERS, BracketSegment.LOSERS,
            BracketSegment.FINALS, BracketSegment.FINALS,
        ]

    def test_loser_destinations(self, four_teams):
        """Both first-round losers meet; the winners final loser drops into the losers final."""
        by_id = {m.match_id: m for m in generate_double_elimination(four_teams)}
        assert by_id[1].loser_destination_match_id == 4
        assert by_id[2].loser_destination_match_id == 4
        assert by_id[3].loser_destination_match_id == 5
        assert by_id[4].child_match_id == 5
        assert by_id[5].child_match_id == 6

    def test_grand_final_and_reset(self, four_teams):
        """The reset hangs off the grand final and starts pending."""
        by_id = {m.match_id: m for m in generate_double_elimination(four_teams)}
        assert by_id[6].parent_match_ids == [3, 5]
        assert (by_id[6].round_number, by_id[7].round_number) == (1, 2)
        assert by_id[7].is_bracket_reset
        assert by_id[7].parent_match_ids == [6]
        assert by_id[7].status is MatchStatus.PENDING
        assert by_id[6].child_match_id is None

    def test_valid(self, four_teams):
        """No structural problems."""
        assert MatchGraph(generate_double_elimination(four_teams)).validate() == []


class TestEightTeams:
    """Tests for the losers bracket wiring at eight teams."""

    def test_counts(self, eight_teams):
        """7 winners, 6 losers, 2 finals."""
        matches = generate_double_elimination(eight_teams)
        assert len(matches) == 15
        assert len([m for m in matches if m.segment is BracketSegment.LOSERS]) == 6
        assert sorted({m.round_number for m in matches if m.segment is BracketSegment.LOSERS}) == [1, 2, 3, 4]

    def test_every_winners_match_drops(self, eight_teams):
        """Each winners match, final included, has a loser destination."""
        matches = generate_double_elimination(eight_teams)
        winners = [m for m in matches if m.segment is BracketSegment.WINNERS]
        assert all(m.loser_destination_match_id is not None for m in winners)

    def test_dropdown_reversed(self, eight_teams):
        """Winners round 2 losers cross over to avoid an immediate rematch."""
        by_id = {m.match_id: m for m in generate_double_elimination(eight_teams)}
        assert by_id[1].loser_destination_match_id == 8
        assert by_id[3].loser_destination_match_id == 9
        assert by_id[5].loser_destination_match_id == 11
        assert by_id[6].loser_destination_match_id == 10
        assert by_id[7].loser_destination_match_id == 13
        assert by_id[12].parent_match_ids == [10, 11]

    def test_valid(self, eight_teams):
        """No structural problems."""
        assert MatchGraph(generate_double_elimination(eight_teams)).validate() == []


class TestByes:
    """Tests for byes in double elimination."""

    def test_six_teams(self, teams_factory):
        """Bye losers meet each other and the BYE carries on."""
        by_id = {m.match_id: m for m in generate_double_elimination(teams_factory(6))}
        assert by_id[5].teams == (1, 2)
        assert by_id[8].teams == (BYE, BYE)
        assert by_id[8].winner_team_id is BYE
        assert by_id[10].team1_id is BYE
        assert by_id[10].status is MatchStatus.PENDING

    def test_too_few_teams(self, teams_factory):
        """Three teams is invalid input."""
        with pytest.raises(InvalidInput):
            generate_double_elimination(teams_factory(3))


@pytest.mark.slow
class TestSweep:
    """Structural properties across many field sizes."""

    @pytest.mark.parametrize("count", range(4, 33))
    def test_node_count_and_validity(self, teams_factory, count):
        """2 * bracket_size - 1 nodes and a valid graph."""
        matches = generate_double_elimination(teams_factory(count))
        stats = calculate_double_elimination_stats(count)
        assert len(matches) == stats['total_matches']
        assert MatchGraph(matches).validate() == []
