from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Device(db.Model):
    __tablename__ = 'devices'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(50), nullable=False)  # router, switch, access_point, firewall
    ip_address = db.Column(db.String(45), unique=True, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default='online')  # online, warning, offline, maintenance
    bandwidth = db.Column(db.Float, nullable=False, default=0)  # MB/s
    max_bandwidth = db.Column(db.Float, nullable=False, default=1000)
    last_activity = db.Column(db.DateTime, nullable=False, default=utcnow)
    model = db.Column(db.String(255))
    location = db.Column(db.String(255))


class BandwidthMetric(db.Model):
    __tablename__ = 'bandwidth_metrics'

    id = db.Column(db.Integer, primary_key=True)
    # soft reference, no cascade
    device_id = db.Column(db.Integer, db.ForeignKey('devices.id', ondelete='SET NULL'), nullable=True, index=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    incoming = db.Column(db.Float, nullable=False)  # GB/s
    outgoing = db.Column(db.Float, nullable=False)  # GB/s


class SystemMetric(db.Model):
    __tablename__ = 'system_metrics'

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    active_devices = db.Column(db.Integer, nullable=False)
    total_bandwidth = db.Column(db.Float, nullable=False)
    warnings = db.Column(db.Integer, nullable=False)
    uptime = db.Column(db.Float, nullable=False)  # percentage


class SecurityEvent(db.Model):
    __tablename__ = 'security_events'

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    event_type = db.Column(db.String(50), nullable=False, index=True)
    severity = db.Column(db.String(20), nullable=False)
    source_ip = db.Column(db.String(45), nullable=False)
    target_ip = db.Column(db.String(45))
    description = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='new', index=True)
    device_id = db.Column(db.Integer, db.ForeignKey('devices.id', ondelete='SET NULL'), nullable=True)


class IdsRule(db.Model):
    __tablename__ = 'ids_rules'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    pattern = db.Column(db.Text, nullable=False)
    severity = db.Column(db.String(20), nullable=False)
    enabled = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class PasswordVault(db.Model):
    __tablename__ = 'password_vaults'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    entries = db.relationship('PasswordEntry', backref='vault', lazy=True, cascade='all, delete-orphan')


class PasswordEntry(db.Model):
    __tablename__ = 'password_entries'

    id = db.Column(db.Integer, primary_key=True)
    vault_id = db.Column(db.Integer, db.ForeignKey('password_vaults.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    username = db.Column(db.String(255))
    email = db.Column(db.String(255))
    # AES-GCM token when a vault key is configured, see vault_crypto
    encrypted_password = db.Column(db.Text, nullable=False)
    website = db.Column(db.String(2048))
    notes = db.Column(db.Text)
    category = db.Column(db.String(100))
    is_favorite = db.Column(db.Boolean, nullable=False, default=False)
    last_used = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
