"""
Cryptographic Signing Service

Uses Ed25519 for signing blog posts.
Every post is signed by its author and verifiable by any peer.

Signatures are over raw bytes prefixed with a label, so a signature
made for one purpose can never be replayed for another.
"""

from typing import Tuple

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey


SIGNING_LABEL_POST = "org.nodeblog/POST"


class Signer:
    """
    Ed25519 signing for post authorship.

    Keys are raw bytes: a 32-byte seed for the private key and
    a 32-byte public key.
    """

    @staticmethod
    def generate_keypair() -> Tuple[bytes, bytes]:
        """
        Generate a new Ed25519 keypair.

        Returns:
            Tuple of (private_key, public_key)
        """
        signing_key = SigningKey.generate()
        return bytes(signing_key), bytes(signing_key.verify_key)

    @staticmethod
    def public_key_for(private_key: bytes) -> bytes:
        """Derive the public key from a private key seed."""
        return bytes(SigningKey(private_key).verify_key)

    @staticmethod
    def _labelled(label: str, message: bytes) -> bytes:
        encoded = label.encode("utf-8")
        return len(encoded).to_bytes(4, "big") + encoded + message

    @staticmethod
    def sign(label: str, message: bytes, private_key: bytes) -> bytes:
        """
        Sign a message with Ed25519.

        Args:
            label: Signing purpose
            message: The bytes to sign
            private_key: Raw 32-byte seed

        Returns:
            Raw 64-byte signature
        """
        signing_key = SigningKey(private_key)
        signed = signing_key.sign(Signer._labelled(label, message))
        return signed.signature

    @staticmethod
    def verify(
        label: str,
        message: bytes,
        signature: bytes,
        public_key: bytes
    ) -> bool:
        """
        Verify an Ed25519 signature.

        Returns:
            True if signature is valid, False otherwise
        """
        try:
            verify_key = VerifyKey(public_key)
            verify_key.verify(Signer._labelled(label, message), signature)
            return True
        except (BadSignatureError, ValueError, TypeError):
            return False
