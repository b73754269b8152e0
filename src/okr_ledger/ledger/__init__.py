"""Confidential ledger core: records, membership, aggregation, oracle handshake."""

from .access import AccessPolicy, AllowAllPolicy, AllowListPolicy, TeamMemberPolicy
from .aggregation import (
    AggregationEngine,
    IndexedLatestResolver,
    LatestResolver,
    ScanLatestResolver,
    TeamAggregate,
)
from .errors import (
    EmptyAggregateError,
    InvalidProofError,
    LedgerError,
    NotFoundError,
    UnauthorizedError,
    UnknownRequestError,
)
from .events import (
    AggregateComputed,
    AggregateDecrypted,
    DecryptionRequested,
    EventBus,
    EventMetrics,
    LedgerEvent,
    RecordSubmitted,
)
from .membership import MembershipRegistry, UniqueMembershipRegistry
from .oracle import (
    DecryptionOracleClient,
    OracleTransport,
    PendingDecryptionRequest,
    RequestStatus,
    RetentionPolicy,
)
from .records import EncryptedRecord, EncryptedRecordStore
from .service import ConfidentialLedger

__all__ = [
    "AccessPolicy",
    "AllowAllPolicy",
    "AllowListPolicy",
    "TeamMemberPolicy",
    "AggregationEngine",
    "IndexedLatestResolver",
    "LatestResolver",
    "ScanLatestResolver",
    "TeamAggregate",
    "EmptyAggregateError",
    "InvalidProofError",
    "LedgerError",
    "NotFoundError",
    "UnauthorizedError",
    "UnknownRequestError",
    "AggregateComputed",
    "AggregateDecrypted",
    "DecryptionRequested",
    "EventBus",
    "EventMetrics",
    "LedgerEvent",
    "RecordSubmitted",
    "MembershipRegistry",
    "UniqueMembershipRegistry",
    "DecryptionOracleClient",
    "OracleTransport",
    "PendingDecryptionRequest",
    "RequestStatus",
    "RetentionPolicy",
    "EncryptedRecord",
    "EncryptedRecordStore",
    "ConfidentialLedger",
]
