import logging
from itertools import count
from threading import Lock

from models import utcnow
from schemas import (
    BandwidthMetricRecord, DeviceRecord, IdsRuleRecord, PasswordEntryRecord,
    PasswordVaultRecord, SecurityEventRecord, SystemMetricRecord,
)
from storage import (
    DEFAULT_BANDWIDTH_LIMIT, DEFAULT_EVENT_LIMIT, DEFAULT_HISTORY_LIMIT,
    DuplicateRecordError, MissingReferenceError, Storage, bump_timestamp, entry_sort_key,
)

logger = logging.getLogger(__name__)


class _Table:
    """id -> record map with a counter that starts at 1 and never reuses ids."""

    def __init__(self):
        self.rows = {}
        self.ids = count(1)

    def insert(self, record_cls, **values):
        record = record_cls(id=next(self.ids), **values)
        self.rows[record.id] = record
        return record

    def replace(self, record_id, **changes):
        record = self.rows[record_id].model_copy(update=changes)
        self.rows[record_id] = record
        return record


def _newest_first(records):
    return sorted(records, key=lambda r: (r.timestamp, r.id), reverse=True)


class MemoryStorage(Storage):
    name = 'memory'

    def __init__(self):
        self.lock = Lock()
        self.devices = _Table()
        self.bandwidth_metrics = _Table()
        self.system_metrics = _Table()
        self.security_events = _Table()
        self.ids_rules = _Table()
        self.password_vaults = _Table()
        self.password_entries = _Table()

    # Devices

    def get_devices(self):
        with self.lock:
            return sorted(self.devices.rows.values(), key=lambda d: d.id)

    def get_device(self, device_id):
        with self.lock:
            return self.devices.rows.get(device_id)

    def _check_ip_free(self, ip_address, own_id=None):
        for device in self.devices.rows.values():
            if device.ip_address == ip_address and device.id != own_id:
                raise DuplicateRecordError('ipAddress', f"IP address {ip_address} is already assigned")

    def create_device(self, data):
        with self.lock:
            self._check_ip_free(data.ip_address)
            device = self.devices.insert(DeviceRecord, last_activity=utcnow(), **data.model_dump())
        logger.info(f"Device created: {device.name} ({device.ip_address})")
        return device

    def update_device(self, device_id, data):
        with self.lock:
            current = self.devices.rows.get(device_id)
            if current is None:
                return None
            changes = data.changes()
            if 'ip_address' in changes:
                self._check_ip_free(changes['ip_address'], own_id=device_id)
            changes['last_activity'] = bump_timestamp(current.last_activity)
            return self.devices.replace(device_id, **changes)

    def delete_device(self, device_id):
        with self.lock:
            deleted = self.devices.rows.pop(device_id, None) is not None
        if deleted:
            logger.info(f"Device {device_id} deleted")
        return deleted

    # Bandwidth metrics

    def get_bandwidth_metrics(self, device_id=None, limit=DEFAULT_BANDWIDTH_LIMIT):
        with self.lock:
            metrics = list(self.bandwidth_metrics.rows.values())
        if device_id:
            metrics = [m for m in metrics if m.device_id == device_id]
        return _newest_first(metrics)[:limit]

    def create_bandwidth_metric(self, data, timestamp=None):
        with self.lock:
            return self.bandwidth_metrics.insert(
                BandwidthMetricRecord, timestamp=timestamp or utcnow(), **data.model_dump())

    # System metrics

    def get_latest_system_metric(self):
        history = self.get_system_metrics_history(limit=1)
        return history[0] if history else None

    def get_system_metrics_history(self, limit=DEFAULT_HISTORY_LIMIT):
        with self.lock:
            metrics = list(self.system_metrics.rows.values())
        return _newest_first(metrics)[:limit]

    def create_system_metric(self, data, timestamp=None):
        with self.lock:
            return self.system_metrics.insert(
                SystemMetricRecord, timestamp=timestamp or utcnow(), **data.model_dump())

    # Security events

    def get_security_events(self, status=None, limit=DEFAULT_EVENT_LIMIT):
        with self.lock:
            events = list(self.security_events.rows.values())
        if status:
            events = [e for e in events if e.status == status]
        return _newest_first(events)[:limit]

    def get_security_event(self, event_id):
        with self.lock:
            return self.security_events.rows.get(event_id)

    def create_security_event(self, data):
        with self.lock:
            event = self.security_events.insert(SecurityEventRecord, timestamp=utcnow(), **data.model_dump())
        logger.info(f"Security event created: {event.event_type} (Severity: {event.severity})")
        return event

    def update_security_event(self, event_id, data):
        with self.lock:
            if event_id not in self.security_events.rows:
                return None
            return self.security_events.replace(event_id, **data.changes())

    def delete_security_event(self, event_id):
        with self.lock:
            return self.security_events.rows.pop(event_id, None) is not None

    # IDS rules

    def get_ids_rules(self):
        with self.lock:
            return sorted(self.ids_rules.rows.values(), key=lambda r: r.id)

    def get_ids_rule(self, rule_id):
        with self.lock:
            return self.ids_rules.rows.get(rule_id)

    def create_ids_rule(self, data):
        now = utcnow()
        with self.lock:
            rule = self.ids_rules.insert(IdsRuleRecord, created_at=now, updated_at=now, **data.model_dump())
        logger.info(f"IDS rule created: {rule.name}")
        return rule

    def update_ids_rule(self, rule_id, data):
        with self.lock:
            current = self.ids_rules.rows.get(rule_id)
            if current is None:
                return None
            changes = data.changes()
            changes['updated_at'] = bump_timestamp(current.updated_at)
            return self.ids_rules.replace(rule_id, **changes)

    def delete_ids_rule(self, rule_id):
        with self.lock:
            return self.ids_rules.rows.pop(rule_id, None) is not None

    # Password vaults

    def get_password_vaults(self):
        with self.lock:
            return sorted(self.password_vaults.rows.values(), key=lambda v: v.id)

    def get_password_vault(self, vault_id):
        with self.lock:
            return self.password_vaults.rows.get(vault_id)

    def create_password_vault(self, data):
        now = utcnow()
        with self.lock:
            vault = self.password_vaults.insert(
                PasswordVaultRecord, created_at=now, updated_at=now, **data.model_dump())
        logger.info(f"Password vault created: {vault.name}")
        return vault

    def update_password_vault(self, vault_id, data):
        with self.lock:
            current = self.password_vaults.rows.get(vault_id)
            if current is None:
                return None
            changes = data.changes()
            changes['updated_at'] = bump_timestamp(current.updated_at)
            return self.password_vaults.replace(vault_id, **changes)

    def delete_password_vault(self, vault_id):
        with self.lock:
            if self.password_vaults.rows.pop(vault_id, None) is None:
                return False
            owned = [e.id for e in self.password_entries.rows.values() if e.vault_id == vault_id]
            for entry_id in owned:
                del self.password_entries.rows[entry_id]
        logger.info(f"Password vault {vault_id} deleted with {len(owned)} entries")
        return True

    # Password entries

    def _check_vault(self, vault_id):
        if vault_id not in self.password_vaults.rows:
            raise MissingReferenceError('vaultId', f"Vault {vault_id} does not exist")

    def get_password_entries(self, vault_id=None):
        with self.lock:
            entries = list(self.password_entries.rows.values())
        if vault_id:
            entries = [e for e in entries if e.vault_id == vault_id]
        return sorted(entries, key=entry_sort_key)

    def get_password_entry(self, entry_id):
        with self.lock:
            return self.password_entries.rows.get(entry_id)

    def create_password_entry(self, data):
        now = utcnow()
        with self.lock:
            self._check_vault(data.vault_id)
            return self.password_entries.insert(
                PasswordEntryRecord, created_at=now, updated_at=now, **data.model_dump())

    def update_password_entry(self, entry_id, data):
        with self.lock:
            current = self.password_entries.rows.get(entry_id)
            if current is None:
                return None
            changes = data.changes()
            if 'vault_id' in changes:
                self._check_vault(changes['vault_id'])
            changes['updated_at'] = bump_timestamp(current.updated_at)
            return self.password_entries.replace(entry_id, **changes)

    def delete_password_entry(self, entry_id):
        with self.lock:
            return self.password_entries.rows.pop(entry_id, None) is not None
