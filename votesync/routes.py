# votesync/routes.py

# HTTP surface around the voting core: voter/admin login, ballot submission,
# voter status, public real count and the signed recapitulation report.

import logging
from flask import request, jsonify
from votesync import app, limiter, db
from votesync.audit.audit_logger import AuditLogger
from votesync.authentication.rbac import ADMIN_ROLES, Permission, require_permission
from votesync.database.models import AdminUser, Voter
from votesync.encryption.digital_signatures import DigitalSignatureService
from votesync.encryption.password_hashing import PasswordHashingService
from votesync.security.input_validator import InputValidator
from votesync.security.token_manager import TokenManager
from votesync.voting.casting import VoteCastingService, current_vote_status
from votesync.voting.errors import StorageError, VoteRejected
from votesync.voting.tally import TallyEngine
from flask_jwt_extended import jwt_required

logger = logging.getLogger(__name__)

password_service = PasswordHashingService()
validator = InputValidator()
token_manager = TokenManager()
audit_logger = AuditLogger(
    log_dir=app.config['AUDIT_LOG_DIR'],
    signing_key_pem=app.config['AUDIT_SIGNING_KEY_PEM'] or None,
)
signature_service = DigitalSignatureService(app.config['RECAP_SIGNING_KEY_PEM'] or None)
signature_service.ensure_keypair()
casting_service = VoteCastingService(audit_logger=audit_logger)
tally_engine = TallyEngine()


def _storage_failure(e, event_type, user_id=None):
    logger.error("%s [correlation_id=%s]: %s", event_type, e.correlation_id, e.detail, exc_info=e)
    audit_logger.log_security_event(event_type, {'correlation_id': e.correlation_id}, user_id=user_id)
    return jsonify({'error': e.message, 'correlationId': e.correlation_id}), e.http_status


@app.route('/login', methods=['POST'])
@limiter.limit(lambda: app.config['LOGIN_RATE_LIMIT'])
def login():
    try:
        voter_id, password = validator.validate_credentials(request.get_json(silent=True), 'voterId')
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    voter = db.session.get(Voter, voter_id) if validator.validate_voter_id(voter_id) else None
    if voter is None or not password_service.verify_password(password, voter.password_hash):
        audit_logger.log_security_event('failed_login', {'voter_id': voter_id, 'ip': request.remote_addr})
        return jsonify({'error': 'Invalid voter ID or password.'}), 401

    audit_logger.log_security_event('successful_login', {'role': 'voter'}, user_id=voter.id)
    resp = jsonify({'message': 'Login successful', 'voterId': voter.id})
    token_manager.issue_voter_session(resp, voter.id)
    return resp


@app.route('/logout', methods=['POST'])
def logout():
    resp = jsonify({'message': 'Logged out'})
    token_manager.end_session(resp)
    return resp


@app.route('/vote', methods=['POST'])
@jwt_required()
@limiter.limit(lambda: app.config['VOTE_RATE_LIMIT'])
@require_permission(Permission.VOTE)
def vote():
    session_voter_id = token_manager.session_voter_id()
    try:
        vote_data = validator.validate_vote_data(request.get_json(silent=True))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        casting_service.cast_vote(
            session_voter_id,
            vote_data['voter_id'],
            vote_data['election_id'],
            vote_data['candidate_id'],
        )
    except VoteRejected as e:
        return jsonify({'error': e.message}), e.http_status
    except StorageError as e:
        return _storage_failure(e, 'vote_error', user_id=session_voter_id)

    # Never echo the chosen candidate back
    return jsonify({'message': 'Your vote has been recorded.'}), 200


@app.route('/status')
@jwt_required()
@require_permission(Permission.VIEW_OWN_STATUS)
def view_own_status():
    voter = db.session.get(Voter, token_manager.session_voter_id())
    if voter is None:
        return jsonify({'error': 'Voter not found.'}), 404
    return jsonify({
        'voterId': voter.id,
        'name': voter.name,
        'elections': current_vote_status(voter),
    })


@app.route('/real-count')
def real_count():
    try:
        return jsonify({'elections': tally_engine.public_real_count()})
    except StorageError as e:
        return _storage_failure(e, 'real_count_error')


@app.route('/admin/login', methods=['POST'])
@limiter.limit(lambda: app.config['LOGIN_RATE_LIMIT'])
def admin_login():
    try:
        username, password = validator.validate_credentials(request.get_json(silent=True), 'username')
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    user = None
    if validator.validate_username(username):
        user = db.session.query(AdminUser).filter_by(username=username).first()
    if user is None or user.role not in ADMIN_ROLES or not password_service.verify_password(password, user.password_hash):
        audit_logger.log_security_event('failed_admin_login', {'username': username, 'ip': request.remote_addr})
        return jsonify({'error': 'Invalid username or password.'}), 401

    audit_logger.log_security_event('successful_admin_login', {'role': user.role}, user_id=user.id)
    resp = jsonify({'message': 'Login successful', 'username': user.username, 'role': user.role})
    token_manager.issue_admin_session(resp, user)
    return resp


@app.route('/admin/elections/<election_id>/recapitulation')
@jwt_required()
@require_permission(Permission.VIEW_RECAPITULATION)
def recapitulation(election_id):
    try:
        report = tally_engine.recapitulation(election_id)
    except VoteRejected as e:
        return jsonify({'error': e.message}), e.http_status
    except StorageError as e:
        return _storage_failure(e, 'recapitulation_error')

    audit_logger.log_security_event('recapitulation_accessed', {'election_id': election_id})
    return jsonify(signature_service.sign_report(report))
