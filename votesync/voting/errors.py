# votesync/voting/errors.py
"""Exceptions raised by the vote-casting and tallying core.

Exception hierarchy:
- VotingError: base class for everything the core raises
  - VoteRejected: a user-facing rejection; carries an HTTP status and a
    message that is safe to show to the voter
    - SessionMismatch, ElectionNotFound, ElectionNotOpen, NotEligible,
      CandidateNotFound, AlreadyVoted
  - StorageError: unexpected persistence failure; the message shown to users
    is generic and the correlation id ties it to the server-side log entry
- DuplicateVoteError: raised by the ballot store on a uniqueness violation;
  the casting service normalizes it to AlreadyVoted

None of the messages mention a candidate.
"""

import uuid


class VotingError(Exception):
    """Base exception for the voting core."""
    pass


class VoteRejected(VotingError):
    http_status = 400
    message = 'Vote rejected.'

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class SessionMismatch(VoteRejected):
    http_status = 403
    message = 'Access denied. Session does not match the voter.'


class ElectionNotFound(VoteRejected):
    http_status = 404
    message = 'Election not found.'


class ElectionNotOpen(VoteRejected):
    http_status = 403
    message = 'This election is not open for voting.'


class NotEligible(VoteRejected):
    http_status = 403
    message = 'You are not eligible to vote in this election.'


class CandidateNotFound(VoteRejected):
    http_status = 404
    message = 'Candidate not found in this election.'


class AlreadyVoted(VoteRejected):
    http_status = 409
    message = 'You have already voted in this election.'


class StorageError(VotingError):
    http_status = 500
    message = 'Failed to record vote.'

    def __init__(self, detail=None):
        self.correlation_id = uuid.uuid4().hex
        self.detail = detail
        super().__init__(detail or self.message)


class DuplicateVoteError(Exception):
    """A ballot for this (election, voter token) pair already exists."""
    pass
