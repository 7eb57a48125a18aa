# votesync/encryption/password_hashing.py

import re
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHashError, HashingError

# Argon2id hashing for both admin and voter credentials


class PasswordHashingService:
    def __init__(self):
        self.ph = PasswordHasher(
            time_cost=3,
            memory_cost=65536,
            parallelism=4,
            hash_len=32,
            salt_len=16,
        )

    def hash_password(self, password: str) -> str:
        if not password:
            raise ValueError("Password must not be empty")
        if not self.is_strong_password(password):
            raise ValueError("Password does not meet security requirements")
        try:
            return self.ph.hash(password)
        except HashingError as e:
            raise ValueError(f"Password hashing failed: {str(e)}")

    def verify_password(self, password: str, hash_value: str) -> bool:
        if not password or not hash_value:
            return False
        try:
            self.ph.verify(hash_value, password)
            return True
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError):
            return False

    def is_strong_password(self, password: str) -> bool:
        if len(password) < 12:
            return False
        has_upper = bool(re.search(r'[A-Z]', password))
        has_lower = bool(re.search(r'[a-z]', password))
        has_digit = bool(re.search(r'\d', password))
        has_special = bool(re.search(r'[!@#$%^&*(),.?":{}|<>]', password))
        return sum([has_upper, has_lower, has_digit, has_special]) >= 3
