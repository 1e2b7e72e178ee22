"""
Match arena: every match of a tournament keyed by id, plus the wiring helpers
the generators and the progression engine share.
"""
import copy
import logging
from typing import Dict, Iterable, Iterator, List, Optional

from .errors import InvalidInput
from .models import BYE, BracketSegment, Match, MatchStatus

logger = logging.getLogger(__name__)


class MatchGraph:
    def __init__(self, matches: Optional[Iterable[Match]] = None, start_match_id: int = 1):
        self._matches: Dict[int, Match] = {}
        self._start_match_id = start_match_id
        for match in matches or []:
            self.add(match)

    def __len__(self):
        return len(self._matches)

    def __iter__(self) -> Iterator[Match]:
        return iter(self.matches())

    def __contains__(self, match_id):
        return match_id in self._matches

    @property
    def next_match_id(self) -> int:
        if not self._matches:
            return self._start_match_id
        return max(max(self._matches) + 1, self._start_match_id)

    def add(self, match: Match) -> Match:
        if match.match_id in self._matches:
            raise InvalidInput(f"Duplicate match id {match.match_id}")
        self._matches[match.match_id] = match
        return match

    def extend(self, matches: Iterable[Match]):
        for match in matches:
            self.add(match)

    def new_match(self, round_number, game_number, segment, team1_id=None, team2_id=None,
                  group_id=None) -> Match:
        """Create a match with the next free id and register it."""
        return self.add(Match(
            match_id=self.next_match_id,
            round_number=round_number,
            game_number=game_number,
            segment=segment,
            team1_id=team1_id,
            team2_id=team2_id,
            group_id=group_id,
        ))

    def get(self, match_id: int) -> Match:
        try:
            return self._matches[match_id]
        except KeyError:
            raise InvalidInput(f"Match {match_id} not found") from None

    def matches(self, segment: Optional[BracketSegment] = None, round_number: Optional[int] = None,
                group_id: Optional[int] = None) -> List[Match]:
        result = []
        for match_id in sorted(self._matches):
            match = self._matches[match_id]
            if segment is not None and match.segment is not segment:
                continue
            if round_number is not None and match.round_number != round_number:
                continue
            if group_id is not None and match.group_id != group_id:
                continue
            result.append(match)
        return result

    def round_numbers(self, segment: Optional[BracketSegment] = None) -> List[int]:
        return sorted({m.round_number for m in self.matches(segment)})

    def link(self, parent_id: int, child_id: int):
        """Send the winner of ``parent_id`` into ``child_id``."""
        parent = self.get(parent_id)
        child = self.get(child_id)
        if len(child.parent_match_ids) >= 2:
            raise InvalidInput(f"Match {child_id} already has two parents")
        parent.child_match_id = child_id
        child.parent_match_ids.append(parent_id)

    def link_loser(self, winners_match_id: int, losers_match_id: int):
        """Send the loser of a winners-bracket match into a losers-bracket match."""
        source = self.get(winners_match_id)
        target = self.get(losers_match_id)
        if len(target.parent_match_ids) >= 2:
            raise InvalidInput(f"Match {losers_match_id} already has two parents")
        source.loser_destination_match_id = losers_match_id
        target.parent_match_ids.append(winners_match_id)

    def advance_winner(self, match: Match) -> Optional[Match]:
        if match.child_match_id is None:
            return None
        child = self.get(match.child_match_id)
        slot = child.place_team(match.winner_team_id)
        logger.debug("Advanced %r from match %s to match %s slot %s",
                     match.winner_team_id, match.match_id, child.match_id, slot)
        return child

    def drop_loser(self, match: Match) -> Optional[Match]:
        if match.segment is not BracketSegment.WINNERS or match.loser_destination_match_id is None:
            return None
        target = self.get(match.loser_destination_match_id)
        slot = target.place_team(match.loser_team_id)
        logger.debug("Dropped %r from match %s to losers match %s slot %s",
                     match.loser_team_id, match.match_id, target.match_id, slot)
        return target

    def auto_advance_byes(self) -> List[Match]:
        """Complete every unplayed match holding a BYE until none is left.

        The present team wins 0-0; two byes meeting produce a BYE winner so
        the walkover keeps propagating downstream.
        """
        completed = []
        changed = True
        while changed:
            changed = False
            for match in self.matches():
                if match.status is not MatchStatus.PENDING:
                    continue
                if match.team1_id is None or match.team2_id is None or not match.has_bye:
                    continue
                real = match.real_teams()
                match.winner_team_id = real[0] if real else BYE
                match.team1_score = 0
                match.team2_score = 0
                match.status = MatchStatus.COMPLETED
                self.advance_winner(match)
                self.drop_loser(match)
                completed.append(match)
                changed = True
        return completed

    def validate(self) -> List[str]:
        """Check the bracket graph invariants; return a list of problems."""
        errors = []
        for match in self.matches():
            for ref_name, ref in (('child', match.child_match_id),
                                  ('loser destination', match.loser_destination_match_id)):
                if ref is not None and ref not in self._matches:
                    errors.append(f"Match {match.match_id} references non-existent {ref_name} {ref}")
            if len(match.parent_match_ids) > 2:
                errors.append(f"Match {match.match_id} has {len(match.parent_match_ids)} parents")
            for parent_id in match.parent_match_ids:
                parent = self._matches.get(parent_id)
                if parent is None:
                    errors.append(f"Match {match.match_id} references non-existent parent {parent_id}")
                    continue
                feeds = match.match_id in (parent.child_match_id, parent.loser_destination_match_id)
                if not feeds and not match.is_bracket_reset:
                    errors.append(f"Match {parent_id} is listed as parent of {match.match_id} but does not feed it")
            if match.child_match_id in self._matches:
                if match.match_id not in self._matches[match.child_match_id].parent_match_ids:
                    errors.append(f"Match {match.child_match_id} does not list parent {match.match_id}")
            if match.loser_destination_match_id is not None and match.segment is not BracketSegment.WINNERS:
                errors.append(f"Match {match.match_id} has a loser destination outside the winners bracket")
            if not match.parent_match_ids and match.team1_id is None and match.team2_id is None:
                errors.append(f"Match {match.match_id} has neither parents nor teams")
        if self._has_cycle():
            errors.append("Bracket graph contains a cycle")
        return errors

    def _has_cycle(self) -> bool:
        visiting, done = set(), set()

        def visit(match_id):
            if match_id in done:
                return False
            if match_id in visiting:
                return True
            visiting.add(match_id)
            match = self._matches[match_id]
            for nxt in (match.child_match_id, match.loser_destination_match_id):
                if nxt in self._matches and visit(nxt):
                    return True
            visiting.discard(match_id)
            done.add(match_id)
            return False

        return any(visit(match_id) for match_id in list(self._matches))

    def snapshot(self) -> List[Match]:
        return [copy.deepcopy(m) for m in self.matches()]
