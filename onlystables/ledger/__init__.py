from .arkiv import ArkivClient, create_entity_store
from .history import AccountHistory
from .models import LedgerEntry, LedgerWriteResult, TransactionRecord, utc_timestamp
from .remote import RemoteLedgerClient
from .service import TransactionLedger, normalize_limit, record_from_body
from .store import Entity, EntityQuery, EntityStore, InMemoryEntityStore

__all__ = [
    "AccountHistory",
    "ArkivClient",
    "Entity",
    "EntityQuery",
    "EntityStore",
    "InMemoryEntityStore",
    "LedgerEntry",
    "LedgerWriteResult",
    "RemoteLedgerClient",
    "TransactionLedger",
    "TransactionRecord",
    "create_entity_store",
    "normalize_limit",
    "record_from_body",
    "utc_timestamp",
]
