# votesync/voting/casting.py
"""Vote-casting service: the only code path that creates ballots.

``cast_vote`` re-checks everything it depends on (session identity, election
window, eligibility, candidate membership) so it is safe to call without any
validation done by the caller. The ballot INSERT is committed before the
voter's ``has_voted`` flag is touched, which leaves exactly two outcomes for
an interrupted call: nothing written, or a committed ballot whose flag is set
or repairable by ``flask reconcile-votes``. A flag is never written for a
ballot that does not exist.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from votesync import db
from votesync.database.models import Candidate, Election, Voter, utcnow
from votesync.voting.ballot_store import BallotStore, epoch_millis
from votesync.voting.eligibility import EligibilityIndex
from votesync.voting.errors import (
    AlreadyVoted,
    CandidateNotFound,
    DuplicateVoteError,
    ElectionNotFound,
    ElectionNotOpen,
    NotEligible,
    SessionMismatch,
    StorageError,
)
from votesync.voting.voter_token import VoterTokenHasher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteReceipt:
    # Deliberately carries no candidate information
    election_id: str
    cast_at_epoch_millis: int
    flag_updated: bool


class VoteCastingService:
    def __init__(self, session=None, ballot_store=None, eligibility=None,
                 token_hasher=None, audit_logger=None, now_fn=None):
        self.session = session or db.session
        self.ballot_store = ballot_store or BallotStore(self.session)
        self.eligibility = eligibility or EligibilityIndex(self.session)
        self._token_hasher = token_hasher
        self.audit_logger = audit_logger
        self.now_fn = now_fn or utcnow

    @property
    def token_hasher(self):
        if self._token_hasher is None:
            return VoterTokenHasher.from_config(current_app.config)
        return self._token_hasher

    def cast_vote(self, session_voter_id: str, claimed_voter_id: str,
                  election_id: str, candidate_id: str) -> VoteReceipt:
        if not session_voter_id or session_voter_id != claimed_voter_id:
            self._audit('session_mismatch', {'election_id': election_id}, user_id=session_voter_id)
            raise SessionMismatch()

        try:
            election = self.session.get(Election, election_id)
            if election is None:
                raise ElectionNotFound()
            if not election.is_open(self.now_fn()):
                raise ElectionNotOpen()

            voter = self.session.get(Voter, claimed_voter_id)
            if voter is None or not self.eligibility.is_eligible(voter, election_id):
                raise NotEligible()

            candidate = self.session.get(Candidate, candidate_id)
            if candidate is None or candidate.election_id != election_id:
                raise CandidateNotFound()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Vote pre-checks failed: {e}") from e

        voter_token = self.token_hasher.token_for(claimed_voter_id)
        cast_at = epoch_millis()

        try:
            if self.ballot_store.has_ballot(election_id, voter_token):
                raise DuplicateVoteError(election_id)
            self.ballot_store.cast_ballot(election_id, candidate_id, voter_token, cast_at)
        except DuplicateVoteError:
            self._audit('duplicate_vote_attempt', {'election_id': election_id, 'voter_token': voter_token})
            raise AlreadyVoted() from None

        self._audit('vote_cast', {'election_id': election_id, 'voter_token': voter_token})
        flag_updated = self._mark_voted(claimed_voter_id, election_id)
        return VoteReceipt(election_id=election_id, cast_at_epoch_millis=cast_at, flag_updated=flag_updated)

    def _mark_voted(self, voter_id, election_id):
        try:
            voter = self.session.get(Voter, voter_id, with_for_update=True, populate_existing=True)
            if voter is None:
                logger.warning("Voter %s vanished after casting in %s; flag not set", voter_id, election_id)
                return False
            has_voted = dict(voter.has_voted or {})
            has_voted[election_id] = True
            voter.has_voted = has_voted
            self.session.commit()
            return True
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(
                "Ballot recorded but has_voted flag update failed for voter %s in %s; "
                "run `flask reconcile-votes` to repair", voter_id, election_id,
            )
            return False

    def has_voted(self, voter_id: str, election_id: str) -> bool:
        """Ground-truth check used by clients after an unknown outcome."""
        return self.ballot_store.has_ballot(election_id, self.token_hasher.token_for(voter_id))

    def _audit(self, event_type, data, user_id=None):
        if self.audit_logger is not None:
            self.audit_logger.log_security_event(event_type, data, user_id=user_id)


def current_vote_status(voter: Voter, eligibility: Optional[EligibilityIndex] = None):
    """Eligible elections for `voter` with their open state and the voter's flag."""
    eligibility = eligibility or EligibilityIndex()
    election_ids = eligibility.elections_for_voter(voter)
    if not election_ids:
        return []
    now = utcnow()
    elections = (
        db.session.query(Election)
        .filter(Election.id.in_(election_ids))
        .order_by(Election.name)
        .all()
    )
    return [
        {
            'id': e.id,
            'name': e.name,
            'status': e.status,
            'isOpen': e.is_open(now),
            'hasVoted': voter.has_voted_in(e.id),
        }
        for e in elections
    ]
