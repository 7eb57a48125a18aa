# votesync/security/token_manager.py
from flask_jwt_extended import (
    create_access_token,
    get_jwt,
    get_jwt_identity,
    set_access_cookies,
    unset_jwt_cookies,
)

# JWT-backed voter and admin sessions. The voter id bound to the session is
# what POST /vote compares against the request body.

VOTER_ROLE = 'voter'


class TokenManager:
    def issue_voter_session(self, response, voter_id: str) -> str:
        token = create_access_token(identity=voter_id, additional_claims={'role': VOTER_ROLE})
        set_access_cookies(response, token)
        return token

    def issue_admin_session(self, response, user) -> str:
        token = create_access_token(
            identity=str(user.id),
            additional_claims={'role': user.role, 'username': user.username},
        )
        set_access_cookies(response, token)
        return token

    def end_session(self, response):
        unset_jwt_cookies(response)

    def session_role(self):
        return get_jwt().get('role')

    def session_voter_id(self):
        """Voter id bound to the verified session, or None for non-voter sessions."""
        if self.session_role() != VOTER_ROLE:
            return None
        return get_jwt_identity()
