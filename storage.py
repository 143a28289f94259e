"""Data-access interface shared by the in-memory and database backends.

Both backends take validated input schemas (see ``schemas``) and return
immutable record schemas. ``update_*`` applies only the fields the caller
sent. Getters and updaters return ``None`` for an unknown id; deleters return
``False``.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional

from models import utcnow
from schemas import (
    BandwidthMetricCreate, BandwidthMetricRecord, DeviceCreate, DeviceRecord, DeviceUpdate,
    IdsRuleCreate, IdsRuleRecord, IdsRuleUpdate, PasswordEntryCreate, PasswordEntryRecord,
    PasswordEntryUpdate, PasswordVaultCreate, PasswordVaultRecord, PasswordVaultUpdate,
    SecurityEventCreate, SecurityEventRecord, SecurityEventUpdate, SystemMetricCreate,
    SystemMetricRecord,
)

DEFAULT_BANDWIDTH_LIMIT = 50
DEFAULT_HISTORY_LIMIT = 24
DEFAULT_EVENT_LIMIT = 50


class StorageError(Exception):
    def __init__(self, field, message):
        super().__init__(message)
        self.field = field
        self.message = message


class DuplicateRecordError(StorageError):
    pass


class MissingReferenceError(StorageError):
    pass


def bump_timestamp(previous: Optional[datetime]) -> datetime:
    """Current time, forced strictly past ``previous``."""
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def entry_sort_key(entry):
    # last_used desc with never-used entries last, then id asc
    if entry.last_used is None:
        return (1, 0, entry.id)
    return (0, -entry.last_used.timestamp(), entry.id)


class Storage(ABC):
    name = 'abstract'

    # Devices
    @abstractmethod
    def get_devices(self) -> List[DeviceRecord]: ...

    @abstractmethod
    def get_device(self, device_id: int) -> Optional[DeviceRecord]: ...

    @abstractmethod
    def create_device(self, data: DeviceCreate) -> DeviceRecord: ...

    @abstractmethod
    def update_device(self, device_id: int, data: DeviceUpdate) -> Optional[DeviceRecord]: ...

    @abstractmethod
    def delete_device(self, device_id: int) -> bool: ...

    # Bandwidth metrics
    @abstractmethod
    def get_bandwidth_metrics(self, device_id: Optional[int] = None,
                              limit: int = DEFAULT_BANDWIDTH_LIMIT) -> List[BandwidthMetricRecord]: ...

    @abstractmethod
    def create_bandwidth_metric(self, data: BandwidthMetricCreate,
                                timestamp: Optional[datetime] = None) -> BandwidthMetricRecord: ...

    # System metrics
    @abstractmethod
    def get_latest_system_metric(self) -> Optional[SystemMetricRecord]: ...

    @abstractmethod
    def get_system_metrics_history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> List[SystemMetricRecord]: ...

    @abstractmethod
    def create_system_metric(self, data: SystemMetricCreate,
                             timestamp: Optional[datetime] = None) -> SystemMetricRecord: ...

    # Security events
    @abstractmethod
    def get_security_events(self, status: Optional[str] = None,
                            limit: int = DEFAULT_EVENT_LIMIT) -> List[SecurityEventRecord]: ...

    @abstractmethod
    def get_security_event(self, event_id: int) -> Optional[SecurityEventRecord]: ...

    @abstractmethod
    def create_security_event(self, data: SecurityEventCreate) -> SecurityEventRecord: ...

    @abstractmethod
    def update_security_event(self, event_id: int, data: SecurityEventUpdate) -> Optional[SecurityEventRecord]: ...

    @abstractmethod
    def delete_security_event(self, event_id: int) -> bool: ...

    # IDS rules
    @abstractmethod
    def get_ids_rules(self) -> List[IdsRuleRecord]: ...

    @abstractmethod
    def get_ids_rule(self, rule_id: int) -> Optional[IdsRuleRecord]: ...

    @abstractmethod
    def create_ids_rule(self, data: IdsRuleCreate) -> IdsRuleRecord: ...

    @abstractmethod
    def update_ids_rule(self, rule_id: int, data: IdsRuleUpdate) -> Optional[IdsRuleRecord]: ...

    @abstractmethod
    def delete_ids_rule(self, rule_id: int) -> bool: ...

    # Password vaults
    @abstractmethod
    def get_password_vaults(self) -> List[PasswordVaultRecord]: ...

    @abstractmethod
    def get_password_vault(self, vault_id: int) -> Optional[PasswordVaultRecord]: ...

    @abstractmethod
    def create_password_vault(self, data: PasswordVaultCreate) -> PasswordVaultRecord: ...

    @abstractmethod
    def update_password_vault(self, vault_id: int, data: PasswordVaultUpdate) -> Optional[PasswordVaultRecord]: ...

    @abstractmethod
    def delete_password_vault(self, vault_id: int) -> bool: ...

    # Password entries
    @abstractmethod
    def get_password_entries(self, vault_id: Optional[int] = None) -> List[PasswordEntryRecord]: ...

    @abstractmethod
    def get_password_entry(self, entry_id: int) -> Optional[PasswordEntryRecord]: ...

    @abstractmethod
    def create_password_entry(self, data: PasswordEntryCreate) -> PasswordEntryRecord: ...

    @abstractmethod
    def update_password_entry(self, entry_id: int, data: PasswordEntryUpdate) -> Optional[PasswordEntryRecord]: ...

    @abstractmethod
    def delete_password_entry(self, entry_id: int) -> bool: ...


def create_storage(app):
    """Build the backend named by ``STORAGE_BACKEND``."""
    backend = app.config.get('STORAGE_BACKEND', 'database')

    if backend == 'memory':
        from memory_storage import MemoryStorage
        return MemoryStorage()

    if backend == 'database':
        from database_storage import DatabaseStorage
        from vault_crypto import cipher_from_config
        return DatabaseStorage(
            cipher=cipher_from_config(app.config),
            seed=app.config.get('SEED_SAMPLE_DATA', True),
        )

    raise ValueError(f"Unknown storage backend: {backend}")
