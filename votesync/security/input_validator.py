# votesync/security/input_validator.py

import re
import html
import bleach

# Request payload validation and sanitization


class InputValidator:
    def __init__(self):
        self.allowed_html_tags = set()
        self.allowed_html_attributes = {}

        self.patterns = {
            'voter_id': re.compile(r'^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$'),
            'record_id': re.compile(r'^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$'),
            'username': re.compile(r'^[A-Za-z0-9._-]{3,100}$'),
            'xss_script': re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL),
            'xss_event': re.compile(r'\bon\w+\s*=', re.IGNORECASE)
        }

    def sanitize_string(self, input_str, max_length=255):
        if not isinstance(input_str, str):
            raise ValueError("Input must be a string")
        if len(input_str) > max_length:
            input_str = input_str[:max_length]

        sanitized = re.sub(self.patterns['xss_script'], '', input_str)
        sanitized = re.sub(self.patterns['xss_event'], '', sanitized)
        sanitized = bleach.clean(sanitized, tags=self.allowed_html_tags, attributes=self.allowed_html_attributes, strip=True)
        return html.unescape(sanitized).strip()

    def validate_voter_id(self, voter_id):
        return isinstance(voter_id, str) and bool(self.patterns['voter_id'].match(voter_id))

    def validate_record_id(self, record_id):
        return isinstance(record_id, str) and bool(self.patterns['record_id'].match(record_id))

    def validate_username(self, username):
        return isinstance(username, str) and bool(self.patterns['username'].match(username))

    def validate_vote_data(self, vote_data):
        """Check a POST /vote body and return it as snake_case ids."""
        if not isinstance(vote_data, dict):
            raise ValueError("Vote data must be a JSON object")

        required_fields = ['electionId', 'candidateId', 'voterId']
        for field in required_fields:
            if not vote_data.get(field):
                raise ValueError(f"Missing required vote field: {field}")

        if not self.validate_record_id(vote_data['electionId']):
            raise ValueError("Invalid electionId")
        if not self.validate_record_id(vote_data['candidateId']):
            raise ValueError("Invalid candidateId")
        if not self.validate_voter_id(vote_data['voterId']):
            raise ValueError("Invalid voterId")

        return {
            'election_id': vote_data['electionId'],
            'candidate_id': vote_data['candidateId'],
            'voter_id': vote_data['voterId'],
        }

    def validate_credentials(self, payload, id_field):
        """Pull (identifier, password) out of a login body, or raise ValueError."""
        if not isinstance(payload, dict):
            raise ValueError("Login data must be a JSON object")
        identifier = payload.get(id_field)
        password = payload.get('password')
        if not isinstance(identifier, str) or not isinstance(password, str) or not identifier or not password:
            raise ValueError(f"{id_field} and password are required")
        return self.sanitize_string(identifier, max_length=100), password
