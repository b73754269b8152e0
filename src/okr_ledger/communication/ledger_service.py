"""
HTTP surface for the confidential OKR ledger.

Host systems (dashboards, wallets, relayers) call these endpoints; the ledger
itself never sees plaintext. Ciphertexts travel as hex of their transport form
and the caller identity is taken from the X-Caller header.

Run with: uvicorn okr_ledger.communication.ledger_service:create_default_app --factory --port 8000
"""

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from okr_ledger.communication.oracle_gateway import MockOracle
from okr_ledger.config import build_ledger, load_ledger_config
from okr_ledger.ledger import (
    ConfidentialLedger,
    EmptyAggregateError,
    InvalidProofError,
    LedgerError,
    NotFoundError,
    OracleTransport,
    TeamAggregate,
    UnauthorizedError,
    UnknownRequestError,
)
from okr_ledger.utils import CompositeMetrics, InMemoryMetrics, LedgerPrometheusMetrics, configure_logging

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFoundError: 404,
    UnknownRequestError: 404,
    UnauthorizedError: 403,
    EmptyAggregateError: 409,
    InvalidProofError: 422,
}


class SubmitRequest(BaseModel):
    """Encrypted OKR submission; every field after team_id is hex."""

    owner: str
    team_id: str
    encrypted_objective: str
    encrypted_key_results: str
    encrypted_progress: str


class SubmitResponse(BaseModel):
    record_id: int


class RecordResponse(BaseModel):
    id: int
    owner: str
    team_id: str
    encrypted_objective: str
    encrypted_key_results: str
    encrypted_progress: str
    created_at: float


class AggregateResponse(BaseModel):
    team_id: str
    encrypted_sum: str
    last_updated: float


class DecryptionResponse(BaseModel):
    request_id: int


class CallbackRequest(BaseModel):
    """Oracle callback. cleartext is an integer or a hex-encoded 32-byte word."""

    request_id: int
    cleartext: Union[int, str]
    proof: str


class RequestStatusResponse(BaseModel):
    request_id: int
    team_id: Optional[str] = None
    status: str
    cleartext: Optional[int] = None


def _decode_hex(value: str, field_name: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise ValueError(f"{field_name} is not valid hex") from e


def create_app(
    ledger: ConfidentialLedger,
    oracle: Optional[OracleTransport] = None,
    prometheus: Optional[LedgerPrometheusMetrics] = None,
) -> FastAPI:
    """
    Build the FastAPI app around an existing ledger.

    Args:
        ledger: Ledger the routes operate on.
        oracle: The ledger's transport. A MockOracle adds
            POST /oracle/mock/{request_id}/fulfil so a self-contained deployment
            can complete decryptions.
        prometheus: Sink whose registry is served at GET /metrics.
    """
    capability = ledger.capability
    app = FastAPI(
        title="Confidential OKR Ledger",
        description="Encrypted OKR submissions, homomorphic team aggregates, oracle decryption",
        version="1.0.0",
    )
    app.state.ledger = ledger
    app.state.oracle = oracle
    app.state.prometheus = prometheus

    def _as_hex(value: Any) -> str:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).hex()
        return capability.to_transport(value).hex()

    def _aggregate_response(aggregate: TeamAggregate) -> AggregateResponse:
        return AggregateResponse(
            team_id=aggregate.team_id,
            encrypted_sum=capability.to_transport(aggregate.encrypted_sum).hex(),
            last_updated=aggregate.last_updated,
        )

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        status_code = ERROR_STATUS.get(type(exc), 400)
        return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": type(exc).__name__})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.post("/records", response_model=SubmitResponse)
    async def submit_record(
        request: SubmitRequest,
        x_caller: Optional[str] = Header(None),
    ) -> SubmitResponse:
        """Append an encrypted OKR record."""
        progress = capability.from_transport(_decode_hex(request.encrypted_progress, "encrypted_progress"))
        record_id = ledger.submit(
            request.owner,
            _decode_hex(request.encrypted_objective, "encrypted_objective"),
            _decode_hex(request.encrypted_key_results, "encrypted_key_results"),
            progress,
            request.team_id,
            caller=x_caller,
        )
        return SubmitResponse(record_id=record_id)

    @app.get("/records/{record_id}", response_model=RecordResponse)
    async def get_record(record_id: int) -> RecordResponse:
        record = ledger.get_record(record_id)
        return RecordResponse(
            id=record.id,
            owner=record.owner,
            team_id=record.team_id,
            encrypted_objective=_as_hex(record.encrypted_objective),
            encrypted_key_results=_as_hex(record.encrypted_key_results),
            encrypted_progress=capability.to_transport(record.encrypted_progress).hex(),
            created_at=record.created_at,
        )

    @app.get("/owners/{owner}/records")
    async def list_owner_records(owner: str) -> List[int]:
        return ledger.records_for_owner(owner)

    @app.post("/teams/{team_id}/recompute", response_model=AggregateResponse)
    async def recompute(team_id: str) -> AggregateResponse:
        return _aggregate_response(ledger.recompute(team_id))

    @app.get("/teams/{team_id}/aggregate", response_model=AggregateResponse)
    async def get_aggregate(team_id: str) -> AggregateResponse:
        return _aggregate_response(ledger.get_aggregate(team_id))

    @app.get("/teams", response_model=List[AggregateResponse])
    async def list_teams() -> List[AggregateResponse]:
        """Team aggregates, most recently updated first."""
        return [_aggregate_response(aggregate) for aggregate in ledger.list_aggregates()]

    @app.post("/teams/{team_id}/decryption", response_model=DecryptionResponse)
    async def request_decryption(team_id: str, x_caller: str = Header(...)) -> DecryptionResponse:
        return DecryptionResponse(request_id=ledger.request_decryption(team_id, caller=x_caller))

    @app.post("/oracle/callback", response_model=RequestStatusResponse)
    async def oracle_callback(request: CallbackRequest) -> RequestStatusResponse:
        """Accept an oracle result; repeats for a fulfilled request are no-ops."""
        cleartext: Union[int, bytes] = request.cleartext
        if isinstance(cleartext, str):
            cleartext = _decode_hex(cleartext, "cleartext")
        value = ledger.on_callback(request.request_id, cleartext, _decode_hex(request.proof, "proof"))
        return await _callback_status(request.request_id, value)

    async def _callback_status(request_id: int, value: int) -> RequestStatusResponse:
        try:
            return await get_request(request_id)
        except NotFoundError:
            # Purged by the retention policy right after fulfilment.
            return RequestStatusResponse(request_id=request_id, status="fulfilled", cleartext=value)

    if isinstance(oracle, MockOracle):
        mock_oracle = oracle

        @app.get("/oracle/mock/queue")
        async def mock_queue() -> List[int]:
            return mock_oracle.queued()

        @app.post("/oracle/mock/{request_id}/fulfil", response_model=RequestStatusResponse)
        async def mock_fulfil(request_id: int) -> RequestStatusResponse:
            """Decrypt a queued request with the mock oracle and deliver its callback."""
            try:
                callback = mock_oracle.fulfil(request_id)
            except KeyError as e:
                raise HTTPException(status_code=404, detail=f"Request {request_id} is not queued at the mock oracle") from e
            value = ledger.on_callback(callback.request_id, callback.cleartext, callback.proof)
            return await _callback_status(callback.request_id, value)

    @app.get("/requests/{request_id}", response_model=RequestStatusResponse)
    async def get_request(request_id: int) -> RequestStatusResponse:
        entry = ledger.get_request(request_id)
        return RequestStatusResponse(
            request_id=entry.request_id,
            team_id=entry.team_id,
            status=entry.status.value,
            cleartext=entry.cleartext,
        )

    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        return {"status": "healthy" if ledger.is_available() else "unavailable"}

    if prometheus is not None:
        registry = prometheus.registry

        @app.get("/metrics")
        async def metrics() -> Response:
            return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    return app


def create_default_app() -> FastAPI:
    """
    App factory for uvicorn: config from $LEDGER_CONFIG_PATH, mirror capability.

    Counters go to an in-memory sink and to Prometheus; the Prometheus registry
    is served at /metrics and, when metrics_port is set, on its own port too.
    """
    config = load_ledger_config()
    configure_logging(config.log_level, ledger_id=config.ledger_id)
    prometheus = LedgerPrometheusMetrics(config.ledger_id)
    metrics = CompositeMetrics([InMemoryMetrics(), prometheus])
    ledger, transport = build_ledger(config, metrics=metrics)
    if config.metrics_port is not None:
        prometheus.start_server(config.metrics_port)
    logger.info(f"Serving ledger {config.ledger_id} with {config.oracle.mode.value} oracle")
    return create_app(ledger, transport, prometheus=prometheus)
