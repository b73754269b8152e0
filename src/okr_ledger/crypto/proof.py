"""Decryption proof format shared by oracles and the ledger."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Union

from okr_ledger.crypto.sign import sign_message

COMMITMENT_BYTES = 32
SIGNATURE_BYTES = 64
CLEARTEXT_BYTES = 32
PROOF_DOMAIN = b"okr-ledger/decryption/v1"

Cleartext = Union[int, bytes]


def compute_commitment(payload: bytes) -> bytes:
    """SHA256 commitment to the transport form of a ciphertext."""
    return hashlib.sha256(payload).digest()


def encode_cleartext(value: int) -> bytes:
    """Encode a cleartext as a 32-byte big-endian word (uint256 layout)."""
    return int(value).to_bytes(CLEARTEXT_BYTES, byteorder="big")


def decode_cleartext(cleartext: Cleartext) -> int:
    """Accept an int or a 32-byte word; raise ValueError on anything else."""
    if isinstance(cleartext, bool):
        raise ValueError("Cleartext must be an integer or a 32-byte word")
    if isinstance(cleartext, int):
        if cleartext < 0 or cleartext >= 1 << (8 * CLEARTEXT_BYTES):
            raise ValueError("Cleartext out of uint256 range")
        return cleartext
    if isinstance(cleartext, (bytes, bytearray)):
        if len(cleartext) != CLEARTEXT_BYTES:
            raise ValueError(f"Cleartext must be {CLEARTEXT_BYTES} bytes, got {len(cleartext)}")
        return int.from_bytes(bytes(cleartext), byteorder="big")
    raise ValueError("Cleartext must be an integer or a 32-byte word")


def build_decryption_message(request_id: int, cleartext: int, commitment: bytes) -> bytes:
    """Canonical bytes an oracle signs for one decryption result."""
    return b"|".join(
        [
            PROOF_DOMAIN,
            int(request_id).to_bytes(8, byteorder="big"),
            encode_cleartext(cleartext),
            commitment,
        ]
    )


@dataclass(frozen=True)
class DecryptionProof:
    """Oracle attestation: commitment to the decrypted ciphertext plus a signature."""

    commitment: bytes
    signature: bytes

    def to_bytes(self) -> bytes:
        return self.commitment + self.signature

    @classmethod
    def from_bytes(cls, data: bytes) -> "DecryptionProof":
        if len(data) != COMMITMENT_BYTES + SIGNATURE_BYTES:
            raise ValueError(
                f"Proof must be {COMMITMENT_BYTES + SIGNATURE_BYTES} bytes, got {len(data)}"
            )
        return cls(commitment=data[:COMMITMENT_BYTES], signature=data[COMMITMENT_BYTES:])

    @classmethod
    def coerce(cls, proof: Union["DecryptionProof", bytes]) -> "DecryptionProof":
        if isinstance(proof, DecryptionProof):
            return proof
        if isinstance(proof, (bytes, bytearray)):
            return cls.from_bytes(bytes(proof))
        raise ValueError(f"Unsupported proof type {type(proof).__name__}")


def sign_decryption(private_key: bytes, request_id: int, cleartext: int, commitment: bytes) -> DecryptionProof:
    """Produce the proof an honest oracle returns alongside a cleartext."""
    message = build_decryption_message(request_id, cleartext, commitment)
    return DecryptionProof(commitment=commitment, signature=sign_message(private_key, message))
