import os
import tempfile

# Configure the app before votesync is imported; it builds itself at import time
_workdir = tempfile.mkdtemp(prefix='votesync-tests-')
os.environ['DATABASE_URL'] = 'sqlite:///' + os.path.join(_workdir, 'votesync.db')
os.environ['AUDIT_LOG_DIR'] = os.path.join(_workdir, 'logs')
os.environ['RATELIMIT_ENABLED'] = 'false'
os.environ['OPA_URL'] = ''
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-with-enough-length'
os.environ['VOTER_TOKEN_SECRET'] = 'test-pepper'

import pytest
from datetime import datetime, timedelta, timezone
from flask_jwt_extended import create_access_token

from votesync import app as flask_app, db
from votesync.database.models import AdminUser, Candidate, Category, Election, Voter
from votesync.encryption.password_hashing import PasswordHashingService

VOTER_PASSWORD = 'KX7P2MQA'
ADMIN_PASSWORD = 'Recap-Admin-2024!'


@pytest.fixture(scope='session')
def password_hashes():
    """Argon2 is deliberately slow; hash the fixture credentials once."""
    service = PasswordHashingService()
    return {
        'voter': service.ph.hash(VOTER_PASSWORD),
        'admin': service.hash_password(ADMIN_PASSWORD),
    }


@pytest.fixture
def app():
    flask_app.config['TESTING'] = True
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def seeded(app, password_hashes):
    """Four elections, two categories and five voters.

    students -> osis; staff -> council; IJ-333333 has no category.
    """
    now = datetime.now(timezone.utc)
    db.session.add_all([
        Election(id='osis', name='Ketua OSIS', status='active', show_in_real_count=True,
                 is_main_in_real_count=True),
        Election(id='council', name='Staff Council', status='active', show_in_real_count=True),
        Election(id='dormant', name='Dormant Election', status='pending'),
        Election(id='future', name='Future Election', status='active',
                 start_date=now + timedelta(hours=1)),
    ])
    db.session.add_all([
        Candidate(id='osis-1', election_id='osis', name='Ayu', vice_candidate_name='Budi', order_number=1),
        Candidate(id='osis-2', election_id='osis', name='Citra', order_number=2),
        Candidate(id='council-1', election_id='council', name='Dewi', order_number=1),
        Candidate(id='dormant-1', election_id='dormant', name='Eko', order_number=1),
        Candidate(id='future-1', election_id='future', name='Fajar', order_number=1),
    ])
    db.session.add_all([
        Category(id='students', name='Students', allowed_elections=['osis', 'dormant', 'future']),
        Category(id='staff', name='Staff', allowed_elections=['council']),
    ])
    db.session.add_all([
        Voter(id='AB-123456', name='Andi', category_id='students', gender='Laki-laki',
              password_hash=password_hashes['voter'], has_voted={}),
        Voter(id='CD-999999', name='Cahya', category_id='students', gender='Perempuan',
              password_hash=password_hashes['voter'], has_voted={}),
        Voter(id='EF-111111', name='Eka', category_id='students', gender=None,
              password_hash=password_hashes['voter'], has_voted={}),
        Voter(id='GH-222222', name='Gilang', category_id='staff', gender='Laki-laki',
              password_hash=password_hashes['voter'], has_voted={}),
        Voter(id='IJ-333333', name='Indah', category_id=None, gender='Perempuan',
              password_hash=password_hashes['voter'], has_voted={}),
    ])
    db.session.add(AdminUser(username='recap-admin', password_hash=password_hashes['admin'], role='administrator'))
    db.session.commit()
    return now


@pytest.fixture
def auth_headers(app):
    def make(identity, role='voter'):
        token = create_access_token(identity=identity, additional_claims={'role': role})
        return {'Authorization': f'Bearer {token}'}
    return make
