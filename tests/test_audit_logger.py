import os
import json
import base64
import pytest
from concurrent.futures import ThreadPoolExecutor
from votesync.audit.audit_logger import AuditLogger
from votesync.encryption.digital_signatures import canonical_json
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey


@pytest.fixture
def temp_log_dir(tmp_path):
    """Create a temporary directory for test logs."""
    log_dir = tmp_path / "test_logs"
    log_dir.mkdir()
    return str(log_dir)


@pytest.fixture
def audit_logger(temp_log_dir):
    return AuditLogger(log_dir=temp_log_dir)


def _entries(audit_logger):
    with open(audit_logger.log_file, 'r') as f:
        return [json.loads(line) for line in f if line.strip()]


def test_init_creates_log_directory(temp_log_dir):
    os.rmdir(temp_log_dir)
    AuditLogger(log_dir=temp_log_dir)
    assert os.path.exists(temp_log_dir)


def test_vote_cast_event_fields(audit_logger, temp_log_dir):
    """A vote_cast entry carries the election and token and the chain fields."""
    data = {"election_id": "osis", "voter_token": "ab" * 16}
    audit_logger.log_security_event("vote_cast", data)

    log_file = os.path.join(temp_log_dir, 'audit.log')
    assert os.path.exists(log_file)

    log_entry = _entries(audit_logger)[0]
    assert log_entry['event_type'] == "vote_cast"
    assert log_entry['data'] == data
    assert log_entry['user_id'] is None
    assert 'timestamp' in log_entry
    assert 'hash' in log_entry
    assert 'signature' in log_entry
    assert log_entry['previous_hash'] is None


def test_hash_chaining(audit_logger):
    audit_logger.log_security_event("voter_login", {"success": True}, user_id="AB-123456")
    first_hash = audit_logger.previous_hash

    audit_logger.log_security_event("duplicate_vote_attempt", {"election_id": "osis"})

    second_entry = _entries(audit_logger)[1]
    assert second_entry['previous_hash'] == first_hash


def test_signature_covers_canonical_entry(audit_logger):
    audit_logger.log_security_event("vote_cast", {"election_id": "osis"})

    entry_copy = _entries(audit_logger)[0]
    signature = entry_copy.pop('signature')
    entry_copy.pop('hash')

    # Raises InvalidSignature if the entry was not signed as written
    audit_logger.signing_key.public_key().verify(
        base64.b64decode(signature),
        canonical_json(entry_copy),
    )


def test_configured_signing_key_is_used(temp_log_dir):
    key = Ed25519PrivateKey.generate()
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    audit = AuditLogger(log_dir=temp_log_dir, signing_key_pem=pem)
    audit.log_security_event("vote_cast", {"election_id": "osis"})

    entry = _entries(audit)[0]
    signature = base64.b64decode(entry.pop('signature'))
    entry.pop('hash')
    key.public_key().verify(signature, canonical_json(entry))


def test_verify_log_integrity_valid(audit_logger):
    audit_logger.log_security_event("EVENT1", {"data": "first"})
    first_hash = audit_logger.previous_hash
    audit_logger.log_security_event("EVENT2", {"data": "second"})

    first_entry, second_entry = _entries(audit_logger)
    assert first_entry['hash'] == first_hash
    assert second_entry['previous_hash'] == first_hash
    assert audit_logger.verify_log_integrity() is True


def test_verify_log_integrity_empty(audit_logger):
    assert audit_logger.verify_log_integrity() is True


def test_verify_log_integrity_appended_garbage(audit_logger):
    audit_logger.log_security_event("EVENT1", {"data": "first"})
    with open(audit_logger.log_file, 'a') as f:
        f.write('{"tampered": true}\n')
    assert audit_logger.verify_log_integrity() is False


def test_verify_log_integrity_edited_entry(audit_logger):
    audit_logger.log_security_event("vote_cast", {"election_id": "osis"})
    audit_logger.log_security_event("vote_cast", {"election_id": "council"})

    entries = _entries(audit_logger)
    entries[0]['data']['election_id'] = 'dormant'
    with open(audit_logger.log_file, 'w') as f:
        for entry in entries:
            f.write(json.dumps(entry) + "\n")

    assert audit_logger.verify_log_integrity() is False


def test_load_previous_hash(temp_log_dir):
    logger1 = AuditLogger(log_dir=temp_log_dir)
    logger1.log_security_event("EVENT1", {"data": "first"})

    logger2 = AuditLogger(log_dir=temp_log_dir)
    assert logger2.previous_hash == logger1.previous_hash


def test_corrupt_last_line_starts_new_chain(temp_log_dir):
    with open(os.path.join(temp_log_dir, 'audit.log'), 'w') as f:
        f.write('not json\n')
    assert AuditLogger(log_dir=temp_log_dir).previous_hash is None


def test_write_error_is_not_raised(audit_logger, monkeypatch):
    def mock_open(*args, **kwargs):
        raise PermissionError("Access denied")

    monkeypatch.setattr("builtins.open", mock_open)

    # Must not propagate
    audit_logger.log_security_event("ERROR_TEST", {"data": "test"})
    assert audit_logger.previous_hash is None


def test_concurrent_events_keep_a_single_chain(audit_logger):
    def burst(worker):
        for n in range(20):
            audit_logger.log_security_event("vote_cast", {"election_id": "osis", "n": n}, user_id=worker)

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(burst, range(16)))

    entries = _entries(audit_logger)
    assert len(entries) == 320
    assert len({entry['previous_hash'] for entry in entries}) == 320
    assert audit_logger.verify_log_integrity() is True
