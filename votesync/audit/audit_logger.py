# votesync/audit/audit_logger.py

import os
import json
import hashlib
import base64
import logging
import threading
from datetime import datetime, timezone
from cryptography.exceptions import InvalidSignature

from votesync.encryption.digital_signatures import canonical_json, load_or_generate_private_key

logger = logging.getLogger(__name__)

# Append-only security audit trail: JSON lines, hash chained, Ed25519 signed.
# Vote events carry the election id and voter token, never the candidate.


class AuditLogger:
    def __init__(self, log_dir='logs', signing_key_pem=None):
        self.log_dir = log_dir
        self.log_file = os.path.join(log_dir, 'audit.log')
        self.previous_hash = None
        # Serializes chain updates across request threads
        self._lock = threading.Lock()

        os.makedirs(log_dir, exist_ok=True)

        self.signing_key = load_or_generate_private_key(signing_key_pem)
        self._load_previous_hash()

    def _load_previous_hash(self):
        if os.path.exists(self.log_file):
            with open(self.log_file, 'r') as f:
                lines = [line for line in f.readlines() if line.strip()]
                if lines:
                    try:
                        last_entry = json.loads(lines[-1])
                        self.previous_hash = last_entry.get('hash')
                    except json.JSONDecodeError:
                        logger.warning("Last audit log line is not valid JSON; starting a new chain")
                        self.previous_hash = None

    def log_security_event(self, event_type, data, user_id=None):
        with self._lock:
            self._append(event_type, data, user_id)

    def _append(self, event_type, data, user_id):
        try:
            log_entry = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "event_type": event_type,
                "data": data,
                "user_id": user_id,
                "previous_hash": self.previous_hash,
            }
            entry_bytes = canonical_json(log_entry)
            entry_hash = hashlib.sha256(entry_bytes).hexdigest()
            signature = self.signing_key.sign(entry_bytes)

            log_entry['hash'] = entry_hash
            log_entry['signature'] = base64.b64encode(signature).decode()

            with open(self.log_file, 'a') as f:
                f.write(json.dumps(log_entry) + "\n")

            self.previous_hash = entry_hash
        except (OSError, TypeError, ValueError):
            # Auditing must not take the request down with it
            logger.exception("Audit log write failed for event %s", event_type)

    def verify_log_integrity(self):
        if not os.path.exists(self.log_file):
            return True
        public_key = self.signing_key.public_key()
        previous_hash = None
        try:
            with open(self.log_file, 'r') as f:
                for line in f:
                    if not line.strip():
                        continue
                    log_entry = json.loads(line)
                    if log_entry.get('previous_hash') != previous_hash:
                        return False
                    entry_copy = dict(log_entry)
                    signature = base64.b64decode(entry_copy.pop('signature'))
                    entry_hash = entry_copy.pop('hash')
                    entry_bytes = canonical_json(entry_copy)
                    if hashlib.sha256(entry_bytes).hexdigest() != entry_hash:
                        return False
                    public_key.verify(signature, entry_bytes)
                    previous_hash = entry_hash
        except (InvalidSignature, KeyError, ValueError):
            return False
        return True
