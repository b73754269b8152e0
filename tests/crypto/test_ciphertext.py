"""Tests for the mirror ciphertext capability."""

import pytest

from okr_ledger.crypto import (
    DecryptionProof,
    MirrorCapability,
    MirrorCiphertext,
    compute_commitment,
    encode_cleartext,
    generate_signing_keypair,
    sign_decryption,
)
from okr_ledger.crypto.ciphertext import MIRROR_MODULUS


class TestMirrorArithmetic:
    """Homomorphic operations on mirror ciphertexts."""

    def test_add_matches_plaintext_sum(self, capability: MirrorCapability) -> None:
        total = capability.add(capability.encrypt(40), capability.encrypt(60))
        assert capability.decrypt(total) == 100

    def test_zero_is_additive_identity(self, capability: MirrorCapability) -> None:
        ct = capability.encrypt(17)
        assert capability.add(ct, capability.zero()) == ct

    def test_add_wraps_at_64_bits(self, capability: MirrorCapability) -> None:
        total = capability.add(capability.encrypt(MIRROR_MODULUS - 1), capability.encrypt(2))
        assert capability.decrypt(total) == 1

    def test_negative_plaintext_rejected(self, capability: MirrorCapability) -> None:
        with pytest.raises(ValueError):
            capability.encrypt(-1)

    def test_uninitialized_handle(self, capability: MirrorCapability) -> None:
        unset = MirrorCiphertext.uninitialized()
        assert capability.is_initialized(unset) is False
        assert capability.is_initialized(capability.zero()) is True
        assert capability.is_initialized(b"not-a-ciphertext") is False
        with pytest.raises(ValueError):
            capability.add(unset, capability.zero())
        with pytest.raises(ValueError):
            capability.decrypt(unset)


class TestMirrorTransport:
    """Serialization used for oracle payloads."""

    def test_transport_is_deterministic(self, capability: MirrorCapability) -> None:
        a = capability.add(capability.encrypt(1), capability.encrypt(2))
        b = capability.encrypt(3)
        assert capability.to_transport(a) == capability.to_transport(b)
        assert capability.to_transport(a) != capability.to_transport(capability.encrypt(4))

    def test_from_transport_restores_value(self, capability: MirrorCapability) -> None:
        payload = capability.to_transport(capability.encrypt(12345))
        assert capability.decrypt(capability.from_transport(payload)) == 12345

    def test_uninitialized_survives_transport(self, capability: MirrorCapability) -> None:
        payload = capability.to_transport(MirrorCiphertext.uninitialized())
        assert capability.is_initialized(capability.from_transport(payload)) is False

    @pytest.mark.parametrize("payload", [b"", b"\x01\x00", b"\x07" + bytes(8)])
    def test_malformed_transport_rejected(self, capability: MirrorCapability, payload: bytes) -> None:
        with pytest.raises(ValueError):
            capability.from_transport(payload)


class TestVerifyDecryption:
    """Oracle proof checks performed by the capability."""

    def _proof(self, keys, request_id: int, value: int) -> DecryptionProof:
        commitment = compute_commitment(b"payload")
        return sign_decryption(keys.private_key, request_id, value, commitment)

    def test_valid_proof_accepted(self, capability, oracle_keys) -> None:
        proof = self._proof(oracle_keys, 1, 100)
        assert capability.verify_decryption(1, 100, proof) is True
        assert capability.verify_decryption(1, encode_cleartext(100), proof.to_bytes()) is True

    def test_proof_bound_to_cleartext_and_request(self, capability, oracle_keys) -> None:
        proof = self._proof(oracle_keys, 1, 100)
        assert capability.verify_decryption(1, 101, proof) is False
        assert capability.verify_decryption(2, 100, proof) is False

    def test_proof_from_other_key_rejected(self, capability) -> None:
        stranger = generate_signing_keypair()
        proof = self._proof(stranger, 1, 100)
        assert capability.verify_decryption(1, 100, proof) is False

    def test_malformed_inputs_rejected(self, capability, oracle_keys) -> None:
        proof = self._proof(oracle_keys, 1, 100)
        assert capability.verify_decryption(1, 100, b"short") is False
        assert capability.verify_decryption(1, b"\x00" * 5, proof) is False
