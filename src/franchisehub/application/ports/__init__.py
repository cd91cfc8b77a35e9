from .record_store_port import RecordStorePort
from .object_store_port import ObjectStorePort
from .identity_port import IdentityProviderPort
from .event_log_port import EventLogPort

__all__ = ["RecordStorePort", "ObjectStorePort", "IdentityProviderPort", "EventLogPort"]
