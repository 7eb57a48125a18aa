# votesync/voting/eligibility.py

# Voter -> elections lookup derived from category assignments. Fails closed:
# a voter without a category, or with an unknown one, is eligible for nothing.

from sqlalchemy.exc import SQLAlchemyError

from votesync import db
from votesync.database.models import Category, Voter
from votesync.voting.errors import StorageError


def elections_for_category(category_id, allowed_by_category):
    if not category_id:
        return frozenset()
    return frozenset(allowed_by_category.get(category_id, ()))


def categories_for_election(election_id, allowed_by_category):
    return {cid for cid, allowed in allowed_by_category.items() if election_id in allowed}


class EligibilityIndex:
    def __init__(self, session=None):
        self.session = session or db.session

    def allowed_by_category(self):
        """Map of category id -> set of election ids its voters may vote in."""
        try:
            rows = self.session.query(Category.id, Category.allowed_elections).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Category lookup failed: {e}") from e
        return {cid: set(allowed or ()) for cid, allowed in rows}

    def elections_for_voter(self, voter):
        if voter is None or not voter.category_id:
            return frozenset()
        try:
            category = self.session.get(Category, voter.category_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Category lookup failed: {e}") from e
        if category is None:
            return frozenset()
        return elections_for_category(category.id, {category.id: category.allowed_elections or ()})

    def is_eligible(self, voter, election_id):
        return election_id in self.elections_for_voter(voter)

    def eligible_voters(self, election_id):
        category_ids = categories_for_election(election_id, self.allowed_by_category())
        if not category_ids:
            return []
        try:
            return self.session.query(Voter).filter(Voter.category_id.in_(category_ids)).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Voter roster lookup failed: {e}") from e
