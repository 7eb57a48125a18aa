# votesync/voting/voter_token.py

# Per-voter token used for duplicate-vote detection. The ballot table stores
# this instead of the voter id.

from cryptography.hazmat.primitives import hashes

DEFAULT_TOKEN_LENGTH = 32  # hex chars, 128 bits
MIN_TOKEN_LENGTH = 16
MAX_TOKEN_LENGTH = 64


def derive_voter_token(voter_id: str, secret: str = '', length: int = DEFAULT_TOKEN_LENGTH) -> str:
    """Return the lowercase hex token for `voter_id`.

    SHA-256 over the optional deployment secret and the voter id, truncated to
    `length` characters. Deterministic for a given secret, so tokens survive
    restarts as long as VOTER_TOKEN_SECRET does not change.
    """
    if not isinstance(voter_id, str) or not voter_id:
        raise ValueError("voter_id must be a non-empty string")
    if not MIN_TOKEN_LENGTH <= length <= MAX_TOKEN_LENGTH:
        raise ValueError(f"Token length must be between {MIN_TOKEN_LENGTH} and {MAX_TOKEN_LENGTH}")

    digest = hashes.Hash(hashes.SHA256())
    secret_bytes = (secret or '').encode()
    # Length prefix keeps (secret, id) pairs from colliding on concatenation
    digest.update(len(secret_bytes).to_bytes(4, 'big'))
    digest.update(secret_bytes)
    digest.update(voter_id.encode('utf-8'))
    return digest.finalize().hex()[:length]


class VoterTokenHasher:
    def __init__(self, secret='', length=DEFAULT_TOKEN_LENGTH):
        self.secret = secret
        self.length = length

    @classmethod
    def from_config(cls, config):
        return cls(
            secret=config.get('VOTER_TOKEN_SECRET', ''),
            length=int(config.get('VOTER_TOKEN_LENGTH', DEFAULT_TOKEN_LENGTH)),
        )

    def token_for(self, voter_id: str) -> str:
        return derive_voter_token(voter_id, self.secret, self.length)
