# votesync/database/models.py

from datetime import datetime, timezone

from votesync import db


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class ElectionStatus:
    PENDING = 'pending'
    ACTIVE = 'active'

    ALL = (PENDING, ACTIVE)


class Gender:
    MALE = 'Laki-laki'
    FEMALE = 'Perempuan'

    ALL = (MALE, FEMALE)


class Election(db.Model):
    __tablename__ = 'elections'
    __table_args__ = (
        db.CheckConstraint("status IN ('pending', 'active')", name='ck_elections_status'),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    start_date = db.Column(db.DateTime(timezone=True), nullable=True)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=ElectionStatus.PENDING)
    show_in_real_count = db.Column(db.Boolean, nullable=False, default=False)
    is_main_in_real_count = db.Column(db.Boolean, nullable=False, default=False)
    use_witnesses = db.Column(db.Boolean, nullable=False, default=False)

    candidates = db.relationship(
        'Candidate', backref='election', lazy=True,
        order_by='Candidate.order_number', cascade='all, delete-orphan',
    )

    def is_open(self, now=None):
        """True while the election is active and `now` falls inside its window."""
        now = now or utcnow()
        if self.status != ElectionStatus.ACTIVE:
            return False
        start = as_utc(self.start_date)
        end = as_utc(self.end_date)
        if start is not None and now < start:
            return False
        if end is not None and now >= end:
            return False
        return True

    def __repr__(self):
        return f'<Election {self.id} ({self.status})>'


class Candidate(db.Model):
    __tablename__ = 'candidates'
    __table_args__ = (
        db.UniqueConstraint('election_id', 'order_number', name='uq_candidates_election_order'),
        db.CheckConstraint('order_number > 0', name='ck_candidates_order_positive'),
    )

    id = db.Column(db.String(64), primary_key=True)
    election_id = db.Column(db.String(64), db.ForeignKey('elections.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    vice_candidate_name = db.Column(db.String(200), nullable=True)
    order_number = db.Column(db.Integer, nullable=False)
    vision = db.Column(db.Text, nullable=True)
    mission = db.Column(db.Text, nullable=True)
    photo_url = db.Column(db.String(500), nullable=True)


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    allowed_elections = db.Column(db.JSON, nullable=False, default=list)

    voters = db.relationship('Voter', backref='category', lazy=True)


class Voter(db.Model):
    __tablename__ = 'voters'

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    category_id = db.Column(db.String(64), db.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True)
    password_hash = db.Column(db.String(200), nullable=False)  # Argon2id
    gender = db.Column(db.String(20), nullable=True)
    # Denormalized read cache of ballot existence, keyed by election id
    has_voted = db.Column(db.JSON, nullable=False, default=dict)

    def has_voted_in(self, election_id):
        return bool((self.has_voted or {}).get(election_id, False))

    def __repr__(self):
        return f'<Voter {self.id}>'


class Ballot(db.Model):
    __tablename__ = 'ballots'
    __table_args__ = (
        db.UniqueConstraint('election_id', 'voter_token', name='uq_ballots_election_voter_token'),
    )

    id = db.Column(db.Integer, primary_key=True)
    election_id = db.Column(db.String(64), db.ForeignKey('elections.id', ondelete='CASCADE'), nullable=False)
    candidate_id = db.Column(db.String(64), db.ForeignKey('candidates.id', ondelete='CASCADE'), nullable=False)
    voter_token = db.Column(db.String(64), nullable=False)
    cast_at_epoch_millis = db.Column(db.BigInteger, nullable=False)

    def __repr__(self):
        return f'<Ballot {self.id} in {self.election_id}>'


class AdminUser(db.Model):
    __tablename__ = 'admin_users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)  # Argon2id
    role = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
