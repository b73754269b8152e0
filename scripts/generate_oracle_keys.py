#!/usr/bin/env python3
"""Generate the Ed25519 key pair a decryption oracle signs its proofs with."""

import argparse
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519


def generate_keypair(identity: str, output_dir: Path) -> None:
    """Write <identity>_sk.pem (PKCS8) and <identity>_pk.pem (SubjectPublicKeyInfo)."""
    private_key = ed25519.Ed25519PrivateKey.generate()
    public_key = private_key.public_key()

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )

    public_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )

    sk_path = output_dir / f"{identity}_sk.pem"
    pk_path = output_dir / f"{identity}_pk.pem"

    sk_path.write_bytes(private_pem)
    pk_path.write_bytes(public_pem)

    print(f"Generated keys for {identity}:")
    print(f"  Private key: {sk_path}")
    print(f"  Public key:  {pk_path}")
    print("Point oracle.signing_key_path / oracle.public_key_path in ledger-config.json at these files.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate an Ed25519 key pair for the decryption oracle")
    parser.add_argument(
        "--identity",
        type=str,
        default="oracle",
        help="Identity used in the key file names (default: oracle)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("config/keys"),
        help="Output directory for keys (default: config/keys)",
    )
    args = parser.parse_args()

    args.output_dir.mkdir(parents=True, exist_ok=True)
    generate_keypair(args.identity, args.output_dir)


if __name__ == "__main__":
    main()
