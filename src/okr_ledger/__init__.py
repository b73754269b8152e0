"""
Confidential OKR ledger: encrypted progress records, homomorphic team
aggregation, and an asynchronous decryption-oracle handshake.

Layers:
- Crypto capability contract + mirror capability for tests and demos
- Ledger core (records, membership, aggregation, oracle client)
- Transports and an HTTP surface for host systems
"""

__all__ = ["config", "crypto", "ledger", "communication", "utils"]
