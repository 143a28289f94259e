import logging

from sqlalchemy.exc import IntegrityError

from models import (
    db, utcnow, Device, BandwidthMetric, SystemMetric, SecurityEvent, IdsRule,
    PasswordVault, PasswordEntry,
)
from sample_data import (
    SAMPLE_DEVICES, SAMPLE_IDS_RULES, SAMPLE_PASSWORD_ENTRIES, SAMPLE_SECURITY_EVENTS,
    SAMPLE_SYSTEM_METRIC, SAMPLE_VAULT,
)
from schemas import (
    BandwidthMetricRecord, DeviceRecord, IdsRuleRecord, PasswordEntryRecord,
    PasswordVaultRecord, SecurityEventRecord, SystemMetricRecord,
)
from storage import (
    DEFAULT_BANDWIDTH_LIMIT, DEFAULT_EVENT_LIMIT, DEFAULT_HISTORY_LIMIT,
    DuplicateRecordError, MissingReferenceError, Storage, bump_timestamp,
)

logger = logging.getLogger(__name__)


class DatabaseStorage(Storage):
    """Storage backed by Flask-SQLAlchemy; needs an application context.

    Every operation is a single commit. Sample rows are inserted on the first
    read of any kind when the devices table is empty.
    """

    name = 'database'

    def __init__(self, cipher=None, seed=True):
        self.cipher = cipher
        self.seed = seed
        self.initialized = False

    def _commit(self):
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def _add(self, row):
        db.session.add(row)
        self._commit()
        return row

    def _delete(self, model, row_id):
        row = db.session.get(model, row_id)
        if row is None:
            return False
        db.session.delete(row)
        self._commit()
        return True

    def _init_data(self):
        if self.initialized or not self.seed:
            return

        if Device.query.first() is not None:
            self.initialized = True
            return

        try:
            devices = [Device(**values) for values in SAMPLE_DEVICES]
            db.session.add_all(devices)
            db.session.add(SystemMetric(**SAMPLE_SYSTEM_METRIC))
            db.session.add_all(IdsRule(**values) for values in SAMPLE_IDS_RULES)
            db.session.flush()

            for values in SAMPLE_SECURITY_EVENTS:
                values = dict(values)
                device = devices[values.pop('device_index')]
                db.session.add(SecurityEvent(device_id=device.id, **values))

            vault = PasswordVault(**SAMPLE_VAULT)
            for values in SAMPLE_PASSWORD_ENTRIES:
                values = dict(values)
                values['encrypted_password'] = self._encrypt(values['encrypted_password'])
                vault.entries.append(PasswordEntry(**values))
            db.session.add(vault)

            db.session.commit()
            logger.info("Sample data initialized")
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error initializing sample data: {e}")
            raise

        self.initialized = True

    def _encrypt(self, value):
        if self.cipher is None:
            return value
        return self.cipher.encrypt(value)

    def _decrypt(self, value):
        if self.cipher is None:
            return value
        return self.cipher.decrypt(value)

    def _check_ip_free(self, ip_address, own_id=None):
        existing = Device.query.filter_by(ip_address=ip_address).first()
        if existing is not None and existing.id != own_id:
            raise DuplicateRecordError('ipAddress', f"IP address {ip_address} is already assigned")

    # Devices

    def get_devices(self):
        self._init_data()
        devices = Device.query.order_by(Device.id).all()
        return [DeviceRecord.model_validate(d) for d in devices]

    def get_device(self, device_id):
        self._init_data()
        device = db.session.get(Device, device_id)
        return DeviceRecord.model_validate(device) if device else None

    def create_device(self, data):
        self._check_ip_free(data.ip_address)
        device = Device(last_activity=utcnow(), **data.model_dump())
        try:
            self._add(device)
        except IntegrityError:
            raise DuplicateRecordError('ipAddress', f"IP address {data.ip_address} is already assigned")
        logger.info(f"Device created: {device.name} ({device.ip_address})")
        return DeviceRecord.model_validate(device)

    def update_device(self, device_id, data):
        device = db.session.get(Device, device_id)
        if not device:
            return None

        changes = data.changes()
        if 'ip_address' in changes:
            self._check_ip_free(changes['ip_address'], own_id=device_id)
        for key, value in changes.items():
            setattr(device, key, value)
        device.last_activity = bump_timestamp(device.last_activity)

        try:
            self._commit()
        except IntegrityError:
            raise DuplicateRecordError('ipAddress', f"IP address {changes.get('ip_address')} is already assigned")
        return DeviceRecord.model_validate(device)

    def delete_device(self, device_id):
        deleted = self._delete(Device, device_id)
        if deleted:
            logger.info(f"Device {device_id} deleted")
        return deleted

    # Bandwidth metrics

    def get_bandwidth_metrics(self, device_id=None, limit=DEFAULT_BANDWIDTH_LIMIT):
        self._init_data()
        query = BandwidthMetric.query
        if device_id:
            query = query.filter_by(device_id=device_id)

        metrics = query.order_by(BandwidthMetric.timestamp.desc(), BandwidthMetric.id.desc()).limit(limit).all()
        return [BandwidthMetricRecord.model_validate(m) for m in metrics]

    def create_bandwidth_metric(self, data, timestamp=None):
        metric = self._add(BandwidthMetric(timestamp=timestamp or utcnow(), **data.model_dump()))
        return BandwidthMetricRecord.model_validate(metric)

    # System metrics

    def get_latest_system_metric(self):
        self._init_data()
        metric = SystemMetric.query.order_by(SystemMetric.timestamp.desc(), SystemMetric.id.desc()).first()
        return SystemMetricRecord.model_validate(metric) if metric else None

    def get_system_metrics_history(self, limit=DEFAULT_HISTORY_LIMIT):
        self._init_data()
        metrics = SystemMetric.query.order_by(
            SystemMetric.timestamp.desc(), SystemMetric.id.desc()
        ).limit(limit).all()
        return [SystemMetricRecord.model_validate(m) for m in metrics]

    def create_system_metric(self, data, timestamp=None):
        metric = self._add(SystemMetric(timestamp=timestamp or utcnow(), **data.model_dump()))
        return SystemMetricRecord.model_validate(metric)

    # Security events

    def get_security_events(self, status=None, limit=DEFAULT_EVENT_LIMIT):
        self._init_data()
        query = SecurityEvent.query
        if status:
            query = query.filter_by(status=status)

        events = query.order_by(SecurityEvent.timestamp.desc(), SecurityEvent.id.desc()).limit(limit).all()
        return [SecurityEventRecord.model_validate(e) for e in events]

    def get_security_event(self, event_id):
        self._init_data()
        event = db.session.get(SecurityEvent, event_id)
        return SecurityEventRecord.model_validate(event) if event else None

    def create_security_event(self, data):
        event = self._add(SecurityEvent(timestamp=utcnow(), **data.model_dump()))
        logger.info(f"Security event created: {event.event_type} (Severity: {event.severity})")
        return SecurityEventRecord.model_validate(event)

    def update_security_event(self, event_id, data):
        event = db.session.get(SecurityEvent, event_id)
        if not event:
            return None

        for key, value in data.changes().items():
            setattr(event, key, value)
        self._commit()
        return SecurityEventRecord.model_validate(event)

    def delete_security_event(self, event_id):
        return self._delete(SecurityEvent, event_id)

    # IDS rules

    def get_ids_rules(self):
        self._init_data()
        rules = IdsRule.query.order_by(IdsRule.id).all()
        return [IdsRuleRecord.model_validate(r) for r in rules]

    def get_ids_rule(self, rule_id):
        self._init_data()
        rule = db.session.get(IdsRule, rule_id)
        return IdsRuleRecord.model_validate(rule) if rule else None

    def create_ids_rule(self, data):
        now = utcnow()
        rule = self._add(IdsRule(created_at=now, updated_at=now, **data.model_dump()))
        logger.info(f"IDS rule created: {rule.name}")
        return IdsRuleRecord.model_validate(rule)

    def update_ids_rule(self, rule_id, data):
        rule = db.session.get(IdsRule, rule_id)
        if not rule:
            return None

        for key, value in data.changes().items():
            setattr(rule, key, value)
        rule.updated_at = bump_timestamp(rule.updated_at)
        self._commit()
        return IdsRuleRecord.model_validate(rule)

    def delete_ids_rule(self, rule_id):
        return self._delete(IdsRule, rule_id)

    # Password vaults

    def get_password_vaults(self):
        self._init_data()
        vaults = PasswordVault.query.order_by(PasswordVault.id).all()
        return [PasswordVaultRecord.model_validate(v) for v in vaults]

    def get_password_vault(self, vault_id):
        self._init_data()
        vault = db.session.get(PasswordVault, vault_id)
        return PasswordVaultRecord.model_validate(vault) if vault else None

    def create_password_vault(self, data):
        now = utcnow()
        vault = self._add(PasswordVault(created_at=now, updated_at=now, **data.model_dump()))
        logger.info(f"Password vault created: {vault.name}")
        return PasswordVaultRecord.model_validate(vault)

    def update_password_vault(self, vault_id, data):
        vault = db.session.get(PasswordVault, vault_id)
        if not vault:
            return None

        for key, value in data.changes().items():
            setattr(vault, key, value)
        vault.updated_at = bump_timestamp(vault.updated_at)
        self._commit()
        return PasswordVaultRecord.model_validate(vault)

    def delete_password_vault(self, vault_id):
        vault = db.session.get(PasswordVault, vault_id)
        if vault is None:
            return False

        entry_count = len(vault.entries)
        db.session.delete(vault)
        self._commit()
        logger.info(f"Password vault {vault_id} deleted with {entry_count} entries")
        return True

    # Password entries

    def _entry_record(self, entry):
        record = PasswordEntryRecord.model_validate(entry)
        return record.model_copy(update={'encrypted_password': self._decrypt(entry.encrypted_password)})

    def _check_vault(self, vault_id):
        if db.session.get(PasswordVault, vault_id) is None:
            raise MissingReferenceError('vaultId', f"Vault {vault_id} does not exist")

    def get_password_entries(self, vault_id=None):
        self._init_data()
        query = PasswordEntry.query
        if vault_id:
            query = query.filter_by(vault_id=vault_id)

        entries = query.order_by(PasswordEntry.last_used.desc().nulls_last(), PasswordEntry.id).all()
        return [self._entry_record(e) for e in entries]

    def get_password_entry(self, entry_id):
        self._init_data()
        entry = db.session.get(PasswordEntry, entry_id)
        return self._entry_record(entry) if entry else None

    def create_password_entry(self, data):
        self._check_vault(data.vault_id)
        values = data.model_dump()
        values['encrypted_password'] = self._encrypt(values['encrypted_password'])
        now = utcnow()
        entry = self._add(PasswordEntry(created_at=now, updated_at=now, **values))
        return self._entry_record(entry)

    def update_password_entry(self, entry_id, data):
        entry = db.session.get(PasswordEntry, entry_id)
        if not entry:
            return None

        changes = data.changes()
        if 'vault_id' in changes:
            self._check_vault(changes['vault_id'])
        if 'encrypted_password' in changes:
            changes['encrypted_password'] = self._encrypt(changes['encrypted_password'])
        for key, value in changes.items():
            setattr(entry, key, value)
        entry.updated_at = bump_timestamp(entry.updated_at)
        self._commit()
        return self._entry_record(entry)

    def delete_password_entry(self, entry_id):
        return self._delete(PasswordEntry, entry_id)
