"""
Oracle transports with mock and HTTP implementations.

MockOracle keeps requests in memory and answers them with signed proofs, which
is enough to drive the full handshake in tests and demos. HttpOracleTransport
forwards requests to a relayer that calls the ledger back asynchronously.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from okr_ledger.crypto import (
    DecryptionProof,
    MirrorCapability,
    compute_commitment,
    encode_cleartext,
    sign_decryption,
)
from okr_ledger.ledger.oracle import OracleTransport
from okr_ledger.utils.retry import RetryError, retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OracleCallback:
    """Arguments an oracle passes back to the ledger's callback."""

    request_id: int
    cleartext: bytes
    proof: DecryptionProof


class MockOracle(OracleTransport):
    """In-memory oracle that decrypts mirror ciphertexts and signs the result."""

    def __init__(self, capability: MirrorCapability, signing_key: bytes) -> None:
        self.capability = capability
        self._signing_key = signing_key
        self._queue: Dict[int, bytes] = {}
        self._lock = threading.Lock()
        self.fail_submissions = False

    def submit(self, request_id: int, payload: bytes) -> None:
        if self.fail_submissions:
            raise RuntimeError("Oracle unavailable")
        with self._lock:
            self._queue[request_id] = payload
        logger.debug(f"Queued decryption request_id={request_id} ({len(payload)} bytes)")

    def is_available(self) -> bool:
        return not self.fail_submissions

    def queued(self) -> List[int]:
        with self._lock:
            return sorted(self._queue)

    def fulfil(self, request_id: int, tamper: bool = False) -> OracleCallback:
        """
        Decrypt a queued request and build the callback arguments.

        Args:
            request_id: Request previously received through submit.
            tamper: Sign a different cleartext than the one returned, producing
                a proof that must fail verification.
        """
        with self._lock:
            payload = self._queue.pop(request_id)
        value = self.capability.decrypt(self.capability.from_transport(payload))
        signed_value = value + 1 if tamper else value
        proof = sign_decryption(self._signing_key, request_id, signed_value, compute_commitment(payload))
        return OracleCallback(request_id=request_id, cleartext=encode_cleartext(value), proof=proof)

    def fulfil_all(self) -> List[OracleCallback]:
        return [self.fulfil(request_id) for request_id in self.queued()]


class HttpOracleTransport(OracleTransport):
    """
    Forwards decryption requests to an HTTP relayer.

    The relayer is expected to call POST /oracle/callback on the ledger service
    once the oracle has produced a cleartext and proof.
    """

    def __init__(
        self,
        relayer_url: str = "http://localhost:7000",
        timeout: float = 10.0,
        retries: int = 0,
        backoff: float = 0.5,
        callback_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        """
        Initialize the relayer client.

        Args:
            relayer_url: Base URL of the relayer service.
            timeout: Request timeout in seconds.
            retries: Extra attempts after a failed POST.
            backoff: Initial delay between attempts, doubled each time.
            callback_url: Where the relayer should deliver the result.
            client: Pre-built httpx client (tests pass one with a mock transport).
        """
        self._relayer_url = relayer_url.rstrip("/")
        self._retries = retries
        self._backoff = backoff
        self._callback_url = callback_url
        self._client = client or httpx.Client(timeout=timeout)
        self._closed = False

    def _post(self, request_id: int, payload: bytes) -> None:
        body = {"request_id": request_id, "payload": payload.hex()}
        if self._callback_url:
            body["callback_url"] = self._callback_url
        response = self._client.post(f"{self._relayer_url}/decryptions", json=body)
        response.raise_for_status()

    def submit(self, request_id: int, payload: bytes) -> None:
        if self._closed:
            raise RuntimeError("Relayer client is closed")
        try:
            retry(
                lambda: self._post(request_id, payload),
                retries=self._retries,
                backoff=self._backoff,
                exceptions=(httpx.HTTPError,),
                label=f"relayer submit request_id={request_id}",
            )
            logger.debug(f"Forwarded decryption request_id={request_id} to relayer")
        except RetryError as e:
            logger.error(f"Failed to forward decryption request_id={request_id}: {e}")
            raise RuntimeError(f"Relayer submit failed: {e}") from e

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()
        self._closed = True

    def is_available(self) -> bool:
        return not self._closed
