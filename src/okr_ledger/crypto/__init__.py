from .ciphertext import (
    Ciphertext,
    CiphertextCapability,
    MirrorCapability,
    MirrorCiphertext,
)
from .proof import (
    DecryptionProof,
    build_decryption_message,
    compute_commitment,
    decode_cleartext,
    encode_cleartext,
    sign_decryption,
)
from .sign import (
    SigningKeyPair,
    generate_signing_keypair,
    load_private_key_pem,
    load_public_key_pem,
    public_key_from_private,
    sign_message,
    verify_signature,
)

__all__ = [
    "Ciphertext",
    "CiphertextCapability",
    "MirrorCapability",
    "MirrorCiphertext",
    "DecryptionProof",
    "build_decryption_message",
    "compute_commitment",
    "decode_cleartext",
    "encode_cleartext",
    "sign_decryption",
    "SigningKeyPair",
    "generate_signing_keypair",
    "load_private_key_pem",
    "load_public_key_pem",
    "public_key_from_private",
    "sign_message",
    "verify_signature",
]
