# votesync/voting/tally.py
"""Read-only aggregation over the ballot ledger and the voter roster.

Nothing here is cached: every call reads the current committed state, so the
public real-count page can simply poll. Empty elections produce zeroed
structures rather than errors.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from votesync import db
from votesync.database.models import Election, Gender, utcnow
from votesync.voting.ballot_store import BallotStore
from votesync.voting.eligibility import EligibilityIndex
from votesync.voting.errors import ElectionNotFound, StorageError

_GENDER_BUCKETS = {Gender.MALE: 'male', Gender.FEMALE: 'female'}


@dataclass(frozen=True)
class Breakdown:
    total: int = 0
    male: int = 0
    female: int = 0
    unspecified: int = 0

    def __sub__(self, other):
        return Breakdown(
            total=self.total - other.total,
            male=self.male - other.male,
            female=self.female - other.female,
            unspecified=self.unspecified - other.unspecified,
        )

    def as_dict(self):
        return {'total': self.total, 'male': self.male, 'female': self.female, 'unspecified': self.unspecified}

    @classmethod
    def of(cls, voters):
        counts = {'male': 0, 'female': 0, 'unspecified': 0}
        total = 0
        for voter in voters:
            counts[_GENDER_BUCKETS.get(voter.gender, 'unspecified')] += 1
            total += 1
        return cls(total=total, **counts)


@dataclass(frozen=True)
class ParticipationStats:
    eligible: Breakdown
    voted: Breakdown

    @property
    def not_voted(self) -> Breakdown:
        # Always derived so the three figures cannot disagree
        return self.eligible - self.voted

    def as_dict(self):
        return {
            'eligible': self.eligible.as_dict(),
            'voted': self.voted.as_dict(),
            'notVoted': self.not_voted.as_dict(),
        }


class TallyEngine:
    def __init__(self, session=None, ballot_store=None, eligibility=None):
        self.session = session or db.session
        self.ballot_store = ballot_store or BallotStore(self.session)
        self.eligibility = eligibility or EligibilityIndex(self.session)

    def results_for(self, election_id: str, candidate_ids: Optional[Iterable[str]] = None) -> Dict[str, int]:
        """Ballot counts per candidate id.

        With a candidate roster, zero-ballot candidates are present with 0.
        """
        counts = self.ballot_store.count_by_candidate(election_id)
        if candidate_ids is None:
            return counts
        results = {candidate_id: 0 for candidate_id in candidate_ids}
        results.update(counts)
        return results

    def participation_stats(self, election_id: str) -> ParticipationStats:
        eligible = self.eligibility.eligible_voters(election_id)
        voted = [v for v in eligible if v.has_voted_in(election_id)]
        return ParticipationStats(eligible=Breakdown.of(eligible), voted=Breakdown.of(voted))

    def recapitulation(self, election_id: str) -> dict:
        try:
            election = self.session.get(Election, election_id)
            if election is None:
                raise ElectionNotFound()
            candidates = sorted(election.candidates, key=lambda c: c.order_number)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Election lookup failed: {e}") from e

        results = self.results_for(election_id, [c.id for c in candidates])
        stats = self.participation_stats(election_id)

        return {
            'election': {
                'id': election.id,
                'name': election.name,
                'description': election.description,
                'status': election.status,
                'startDate': election.start_date.isoformat() if election.start_date else None,
                'endDate': election.end_date.isoformat() if election.end_date else None,
                'useWitnesses': election.use_witnesses,
            },
            'candidates': [
                {
                    'id': c.id,
                    'orderNumber': c.order_number,
                    'name': c.name,
                    'viceCandidateName': c.vice_candidate_name,
                    'votes': results.get(c.id, 0),
                }
                for c in candidates
            ],
            'totalVotes': sum(results.values()),
            'participation': stats.as_dict(),
            'generatedAt': utcnow().isoformat(),
        }

    def public_real_count(self):
        """Results for elections flagged for the public display, main election first."""
        try:
            elections = (
                self.session.query(Election)
                .filter(Election.show_in_real_count.is_(True))
                .order_by(Election.is_main_in_real_count.desc(), Election.name)
                .all()
            )
            rosters = [(e, sorted(e.candidates, key=lambda c: c.order_number)) for e in elections]
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Real count lookup failed: {e}") from e

        board = []
        for election, candidates in rosters:
            results = self.results_for(election.id, [c.id for c in candidates])
            board.append({
                'id': election.id,
                'name': election.name,
                'isMain': election.is_main_in_real_count,
                'candidates': [
                    {
                        'id': c.id,
                        'orderNumber': c.order_number,
                        'name': c.name,
                        'viceCandidateName': c.vice_candidate_name,
                        'photo': c.photo_url,
                        'votes': results.get(c.id, 0),
                    }
                    for c in candidates
                ],
                'totalVotes': sum(results.values()),
            })
        return board
