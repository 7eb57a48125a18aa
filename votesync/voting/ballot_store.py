# votesync/voting/ballot_store.py
"""Append-only ballot ledger.

Uniqueness of (election_id, voter_token) is enforced by the database through
``uq_ballots_election_voter_token``. The INSERT is what decides a race between
two submissions for the same voter; ``has_ballot`` is only a fast path that
saves a round trip for the common repeat-visit case.

Ballots are never updated. Bulk deletion belongs to administrative reset
tooling and is not exposed here.
"""

import logging
import time

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from votesync import db
from votesync.database.models import Ballot
from votesync.voting.errors import DuplicateVoteError, StorageError

logger = logging.getLogger(__name__)


def epoch_millis():
    return int(time.time() * 1000)


class BallotStore:
    def __init__(self, session=None):
        self.session = session or db.session

    def cast_ballot(self, election_id, candidate_id, voter_token, timestamp=None):
        """Insert and commit a ballot, returning its id.

        Raises DuplicateVoteError when a ballot for the same election and voter
        token already exists, StorageError for any other persistence failure.
        """
        ballot = Ballot(
            election_id=election_id,
            candidate_id=candidate_id,
            voter_token=voter_token,
            cast_at_epoch_millis=timestamp if timestamp is not None else epoch_millis(),
        )
        try:
            self.session.add(ballot)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            # Only a duplicate when the competing row is actually there; any
            # other constraint failure is a storage problem.
            if self.has_ballot(election_id, voter_token):
                raise DuplicateVoteError(election_id) from e
            raise StorageError(f"Ballot insert violated a constraint: {e.orig}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Ballot insert failed: {e}") from e
        return ballot.id

    def has_ballot(self, election_id, voter_token):
        try:
            found = (
                self.session.query(Ballot.id)
                .filter_by(election_id=election_id, voter_token=voter_token)
                .first()
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Ballot lookup failed: {e}") from e
        return found is not None

    def count_by_candidate(self, election_id):
        try:
            rows = (
                self.session.query(Ballot.candidate_id, func.count(Ballot.id))
                .filter(Ballot.election_id == election_id)
                .group_by(Ballot.candidate_id)
                .all()
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Ballot count failed: {e}") from e
        return {candidate_id: int(count) for candidate_id, count in rows}

    def voter_tokens(self, election_id):
        try:
            rows = self.session.query(Ballot.voter_token).filter(Ballot.election_id == election_id).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Ballot token scan failed: {e}") from e
        return {token for (token,) in rows}
