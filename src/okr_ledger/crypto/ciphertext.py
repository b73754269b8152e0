"""
Ciphertext capability contract and an in-process mirror implementation.

The ledger core only talks to CiphertextCapability. A production host plugs in
its FHE runtime; tests and demos use MirrorCapability, whose ciphertexts carry
their plaintext so results can be checked against a plain sum.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Union

from okr_ledger.crypto.proof import (
    Cleartext,
    DecryptionProof,
    build_decryption_message,
    decode_cleartext,
)
from okr_ledger.crypto.sign import verify_signature

# Opaque handle; only the capability that produced it knows its structure.
Ciphertext = Any

MIRROR_BITS = 64
MIRROR_MODULUS = 1 << MIRROR_BITS
_MIRROR_TAG_SET = b"\x01"
_MIRROR_TAG_UNSET = b"\x00"


class CiphertextCapability(ABC):
    """Operations the ledger may perform on encrypted integers."""

    @abstractmethod
    def zero(self) -> Ciphertext:
        """Return a fresh encryption of zero."""

    @abstractmethod
    def add(self, left: Ciphertext, right: Ciphertext) -> Ciphertext:
        """Homomorphic addition."""

    @abstractmethod
    def is_initialized(self, ciphertext: Ciphertext) -> bool:
        """True when the handle refers to a usable ciphertext."""

    @abstractmethod
    def to_transport(self, ciphertext: Ciphertext) -> bytes:
        """Deterministic serialization handed to the oracle."""

    @abstractmethod
    def from_transport(self, payload: bytes) -> Ciphertext:
        """Inverse of to_transport; raises ValueError on malformed input."""

    @abstractmethod
    def verify_decryption(
        self, request_id: int, cleartext: Cleartext, proof: Union[DecryptionProof, bytes]
    ) -> bool:
        """Check an oracle proof for (request_id, cleartext)."""


@dataclass(frozen=True)
class MirrorCiphertext:
    """Ciphertext stand-in holding its plaintext modulo 2**64."""

    value: int = 0
    initialized: bool = True

    @classmethod
    def uninitialized(cls) -> "MirrorCiphertext":
        return cls(value=0, initialized=False)


class MirrorCapability(CiphertextCapability):
    """
    Plaintext-mirroring capability with euint64 wrap-around semantics.

    Decryption proofs are Ed25519 signatures from the oracle key whose public
    half is passed in at construction.
    """

    def __init__(self, oracle_public_key: bytes) -> None:
        self.oracle_public_key = oracle_public_key

    def encrypt(self, value: int) -> MirrorCiphertext:
        if value < 0:
            raise ValueError("Mirror ciphertexts hold unsigned integers")
        return MirrorCiphertext(value=value % MIRROR_MODULUS)

    def decrypt(self, ciphertext: MirrorCiphertext) -> int:
        if not self.is_initialized(ciphertext):
            raise ValueError("Cannot decrypt an uninitialized ciphertext")
        return ciphertext.value

    def zero(self) -> MirrorCiphertext:
        return MirrorCiphertext(value=0)

    def add(self, left: MirrorCiphertext, right: MirrorCiphertext) -> MirrorCiphertext:
        if not (self.is_initialized(left) and self.is_initialized(right)):
            raise ValueError("Cannot add uninitialized ciphertexts")
        return MirrorCiphertext(value=(left.value + right.value) % MIRROR_MODULUS)

    def is_initialized(self, ciphertext: Ciphertext) -> bool:
        return isinstance(ciphertext, MirrorCiphertext) and ciphertext.initialized

    def to_transport(self, ciphertext: MirrorCiphertext) -> bytes:
        tag = _MIRROR_TAG_SET if self.is_initialized(ciphertext) else _MIRROR_TAG_UNSET
        return tag + int(ciphertext.value).to_bytes(MIRROR_BITS // 8, byteorder="big")

    def from_transport(self, payload: bytes) -> MirrorCiphertext:
        if len(payload) != 1 + MIRROR_BITS // 8:
            raise ValueError("Malformed mirror ciphertext")
        tag, body = payload[:1], payload[1:]
        if tag == _MIRROR_TAG_UNSET:
            return MirrorCiphertext.uninitialized()
        if tag != _MIRROR_TAG_SET:
            raise ValueError("Unknown mirror ciphertext tag")
        return MirrorCiphertext(value=int.from_bytes(body, byteorder="big"))

    def verify_decryption(
        self, request_id: int, cleartext: Cleartext, proof: Union[DecryptionProof, bytes]
    ) -> bool:
        try:
            parsed = DecryptionProof.coerce(proof)
            value = decode_cleartext(cleartext)
        except ValueError:
            return False
        message = build_decryption_message(request_id, value, parsed.commitment)
        return verify_signature(self.oracle_public_key, message, parsed.signature)
