# votesync/encryption/digital_signatures.py

import base64
import hashlib
import json
import logging
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives import serialization

logger = logging.getLogger(__name__)

# Ed25519 signatures over canonical JSON, used for recapitulation reports


def canonical_json(data) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(',', ':')).encode()


def load_or_generate_private_key(pem_str=None):
    if pem_str:
        return serialization.load_pem_private_key(pem_str.encode(), password=None)
    logger.warning("No signing key configured; generated an ephemeral Ed25519 key")
    return Ed25519PrivateKey.generate()


class DigitalSignatureService:
    def __init__(self, private_key_pem=None):
        self.private_key = None
        self.public_key = None
        if private_key_pem:
            self.load_private_key(private_key_pem)

    def generate_keypair(self):
        self.private_key = Ed25519PrivateKey.generate()
        self.public_key = self.private_key.public_key()
        return self.get_public_key_pem()

    def load_private_key(self, pem_str: str):
        self.private_key = serialization.load_pem_private_key(pem_str.encode(), password=None)
        self.public_key = self.private_key.public_key()

    def ensure_keypair(self):
        if not self.private_key:
            self.generate_keypair()
            logger.warning("No report signing key configured; generated an ephemeral Ed25519 key")

    def get_public_key_pem(self) -> str:
        if not self.public_key:
            raise ValueError("No public key available")
        pem = self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo)
        return pem.decode()

    def sign_report(self, report: dict) -> dict:
        """Wrap `report` with its SHA-256 digest and an Ed25519 signature of that digest."""
        if not self.private_key:
            raise ValueError("No private key available")
        report_hash = hashlib.sha256(canonical_json(report)).digest()
        signature = self.private_key.sign(report_hash)
        return {
            "report": report,
            "report_hash": base64.b64encode(report_hash).decode(),
            "signature": base64.b64encode(signature).decode(),
            "public_key": self.get_public_key_pem(),
        }

    def verify_report(self, signed_report: dict, public_key_pem: str = None) -> bool:
        try:
            public_key = self.public_key
            if public_key_pem:
                public_key = serialization.load_pem_public_key(public_key_pem.encode())
            if not public_key:
                raise ValueError("No public key available")

            computed_hash = hashlib.sha256(canonical_json(signed_report["report"])).digest()
            if computed_hash != base64.b64decode(signed_report["report_hash"]):
                return False

            public_key.verify(base64.b64decode(signed_report["signature"]), computed_hash)
            return True
        except (InvalidSignature, KeyError, ValueError, TypeError):
            return False
