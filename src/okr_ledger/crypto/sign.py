from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)


@dataclass
class SigningKeyPair:
    """Ed25519 signing keypair held by a decryption oracle."""
    private_key: bytes
    public_key: bytes


def generate_signing_keypair() -> SigningKeyPair:
    """
    Generate an Ed25519 signing keypair.
    Returns SigningKeyPair with both keys as raw bytes.
    """
    private_key_obj = Ed25519PrivateKey.generate()
    private_bytes = private_key_obj.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption()
    )
    return SigningKeyPair(private_key=private_bytes, public_key=public_key_from_private(private_bytes))


def public_key_from_private(private_key: bytes) -> bytes:
    private_key_obj = Ed25519PrivateKey.from_private_bytes(private_key)
    return private_key_obj.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw
    )


def sign_message(private_key: bytes, message: bytes) -> bytes:
    """Sign a message using Ed25519 private key bytes."""
    private_key_obj = Ed25519PrivateKey.from_private_bytes(private_key)
    return private_key_obj.sign(message)


def verify_signature(public_key_bytes: bytes, message: bytes, signature: bytes) -> bool:
    try:
        pub = Ed25519PublicKey.from_public_bytes(public_key_bytes)
        pub.verify(signature, message)
        return True
    except (InvalidSignature, ValueError):
        return False


def load_public_key_pem(path: Path) -> bytes:
    """Read a PEM (SubjectPublicKeyInfo) Ed25519 key and return raw public bytes."""
    key = serialization.load_pem_public_key(Path(path).read_bytes())
    if not isinstance(key, Ed25519PublicKey):
        raise ValueError(f"{path} does not contain an Ed25519 public key")
    return key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw
    )


def load_private_key_pem(path: Path) -> bytes:
    """Read a PEM (PKCS8, unencrypted) Ed25519 key and return raw private bytes."""
    key = serialization.load_pem_private_key(Path(path).read_bytes(), password=None)
    if not isinstance(key, Ed25519PrivateKey):
        raise ValueError(f"{path} does not contain an Ed25519 private key")
    return key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption()
    )
