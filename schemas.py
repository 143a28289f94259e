"""Request and record schemas.

Input schemas validate request bodies at the API boundary: camelCase keys,
strict JSON types, unknown fields rejected. ``*Update`` schemas accept any
subset of the writable fields. Record schemas are the immutable values the
storage layer hands back and the API serialises.
"""
from datetime import datetime
from ipaddress import ip_address
from typing import Annotated, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, ValidationError, field_validator
from pydantic.alias_generators import to_camel

DEVICE_TYPES = ('router', 'switch', 'access_point', 'firewall')
DEVICE_STATUSES = ('online', 'warning', 'offline', 'maintenance')
SEVERITIES = ('low', 'medium', 'high', 'critical')
EVENT_STATUSES = ('new', 'investigating', 'resolved', 'false_positive')

DeviceType = Literal['router', 'switch', 'access_point', 'firewall']
DeviceStatus = Literal['online', 'warning', 'offline', 'maintenance']
Severity = Literal['low', 'medium', 'high', 'critical']
EventStatus = Literal['new', 'investigating', 'resolved', 'false_positive']

Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
NonNegative = Annotated[float, Field(ge=0)]
Count = Annotated[int, Field(ge=0)]


def _check_ip(value):
    if value is None:
        return value
    try:
        ip_address(value)
    except ValueError:
        raise ValueError('Invalid IP address')
    return value


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class InputSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='forbid',
        strict=True,
    )

    def changes(self):
        """Fields the caller actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


# In the *Update schemas a non-nullable field defaults to None without being
# validated, so leaving it out is fine while an explicit null is rejected.

class DeviceCreate(InputSchema):
    name: Text
    type: DeviceType
    ip_address: Text
    status: DeviceStatus = 'online'
    bandwidth: NonNegative = 0
    max_bandwidth: Annotated[float, Field(ge=1)] = 1000
    model: Optional[str] = None
    location: Optional[str] = None

    check_ip = field_validator('ip_address')(_check_ip)


class DeviceUpdate(InputSchema):
    name: Text = None
    type: DeviceType = None
    ip_address: Text = None
    status: DeviceStatus = None
    bandwidth: NonNegative = None
    max_bandwidth: Annotated[float, Field(ge=1)] = None
    model: Optional[str] = None
    location: Optional[str] = None

    check_ip = field_validator('ip_address')(_check_ip)


class BandwidthMetricCreate(InputSchema):
    device_id: Optional[int] = None
    incoming: NonNegative
    outgoing: NonNegative


class SystemMetricCreate(InputSchema):
    active_devices: Count
    total_bandwidth: NonNegative
    warnings: Count
    uptime: Annotated[float, Field(ge=0, le=100)]


class SecurityEventCreate(InputSchema):
    event_type: Text
    severity: Severity
    source_ip: Text
    target_ip: Optional[str] = None
    description: Text
    status: EventStatus = 'new'
    device_id: Optional[int] = None

    blank_target_is_none = field_validator('target_ip', mode='before')(_blank_to_none)
    check_ips = field_validator('source_ip', 'target_ip')(_check_ip)


class SecurityEventUpdate(InputSchema):
    event_type: Text = None
    severity: Severity = None
    source_ip: Text = None
    target_ip: Optional[str] = None
    description: Text = None
    status: EventStatus = None
    device_id: Optional[int] = None

    blank_target_is_none = field_validator('target_ip', mode='before')(_blank_to_none)
    check_ips = field_validator('source_ip', 'target_ip')(_check_ip)


class IdsRuleCreate(InputSchema):
    name: Text
    description: Text
    pattern: Text
    severity: Severity
    enabled: bool = True


class IdsRuleUpdate(InputSchema):
    name: Text = None
    description: Text = None
    pattern: Text = None
    severity: Severity = None
    enabled: bool = None


class PasswordVaultCreate(InputSchema):
    name: Text
    description: Optional[str] = None


class PasswordVaultUpdate(InputSchema):
    name: Text = None
    description: Optional[str] = None


class _EntryFields(InputSchema):

    @field_validator('email', 'website', mode='before', check_fields=False)
    @classmethod
    def empty_is_none(cls, value):
        return _blank_to_none(value)

    @field_validator('website', check_fields=False)
    @classmethod
    def check_url(cls, value):
        if value is None:
            return value
        parsed = urlparse(value)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ValueError('Invalid URL')
        return value


class PasswordEntryCreate(_EntryFields):
    vault_id: int
    title: Text
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    encrypted_password: Annotated[str, StringConstraints(min_length=1)]
    website: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    is_favorite: bool = False
    last_used: Optional[datetime] = None


class PasswordEntryUpdate(_EntryFields):
    vault_id: int = None
    title: Text = None
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    encrypted_password: Annotated[str, StringConstraints(min_length=1)] = None
    website: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    is_favorite: bool = None
    last_used: Optional[datetime] = None


class Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )

    def to_json(self):
        return self.model_dump(mode='json', by_alias=True)


class DeviceRecord(Record):
    id: int
    name: str
    type: str
    ip_address: str
    status: str
    bandwidth: float
    max_bandwidth: float
    last_activity: datetime
    model: Optional[str] = None
    location: Optional[str] = None


class BandwidthMetricRecord(Record):
    id: int
    device_id: Optional[int] = None
    timestamp: datetime
    incoming: float
    outgoing: float


class SystemMetricRecord(Record):
    id: int
    timestamp: datetime
    active_devices: int
    total_bandwidth: float
    warnings: int
    uptime: float


class SecurityEventRecord(Record):
    id: int
    timestamp: datetime
    event_type: str
    severity: str
    source_ip: str
    target_ip: Optional[str] = None
    description: str
    status: str
    device_id: Optional[int] = None


class IdsRuleRecord(Record):
    id: int
    name: str
    description: str
    pattern: str
    severity: str
    enabled: bool
    created_at: datetime
    updated_at: datetime


class PasswordVaultRecord(Record):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PasswordEntryRecord(Record):
    id: int
    vault_id: int
    title: str
    username: Optional[str] = None
    email: Optional[str] = None
    encrypted_password: str
    website: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    is_favorite: bool
    last_used: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


def format_errors(exc: ValidationError):
    """Flatten a pydantic error into ``[{'field': ..., 'message': ...}]``."""
    errors = []
    for error in exc.errors(include_url=False):
        field = '.'.join(str(part) for part in error['loc']) or 'body'
        errors.append({'field': field, 'message': error['msg']})
    return errors
