# votesync/voting/reconcile.py

# Rebuilds voters' has_voted flags from ballot existence. The ballot table is
# the source of truth; this repairs flags left stale by an interrupted cast.

import logging

from sqlalchemy.exc import SQLAlchemyError

from votesync import db
from votesync.database.models import Election, Voter
from votesync.voting.ballot_store import BallotStore
from votesync.voting.errors import StorageError

logger = logging.getLogger(__name__)


def reconcile_voted_flags(token_hasher, election_id=None, session=None):
    """Return the number of voters whose flags were changed."""
    session = session or db.session
    store = BallotStore(session)

    if election_id is not None:
        election_ids = [election_id]
    else:
        election_ids = [eid for (eid,) in session.query(Election.id).all()]
    tokens_by_election = {eid: store.voter_tokens(eid) for eid in election_ids}

    # Tokens are read before the voters, so a clear is re-checked per voter
    repaired = 0
    try:
        for voter in session.query(Voter).all():
            token = token_hasher.token_for(voter.id)
            flags = dict(voter.has_voted or {})
            changed = False
            for eid, tokens in tokens_by_election.items():
                voted = token in tokens
                if voted and not flags.get(eid):
                    flags[eid] = True
                    changed = True
                elif not voted and eid in flags and not store.has_ballot(eid, token):
                    del flags[eid]
                    changed = True
            if changed:
                voter.has_voted = flags
                repaired += 1
                logger.info("Repaired has_voted flags for voter %s", voter.id)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError(f"Flag reconciliation failed: {e}") from e
    return repaired
