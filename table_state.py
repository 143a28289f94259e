"""Derived state for the dashboard tables and charts.

Everything here works on the JSON dicts the API returns (camelCase keys) and
never mutates its input.
"""
import locale
from collections import Counter
from datetime import datetime
from functools import cmp_to_key
from numbers import Number

from models import utcnow

ASC = 'asc'
DESC = 'desc'

OPEN_EVENT_STATUSES = ('new', 'investigating')

EVENT_PREDICATES = {
    'open': lambda record: record.get('status') in OPEN_EVENT_STATUSES,
}


class SortState:
    def __init__(self, field=None, direction=ASC):
        self.field = field
        self.direction = direction if direction in (ASC, DESC) else ASC

    @classmethod
    def from_args(cls, args, allowed):
        field = args.get('sort')
        if field not in allowed:
            return cls()
        return cls(field, args.get('dir', ASC))

    def toggle(self, field):
        if field == self.field:
            return SortState(field, DESC if self.direction == ASC else ASC)
        return SortState(field, ASC)

    def __eq__(self, other):
        return isinstance(other, SortState) and (self.field, self.direction) == (other.field, other.direction)

    def __repr__(self):
        return f"SortState({self.field!r}, {self.direction!r})"


def _is_number(value):
    return isinstance(value, Number) and not isinstance(value, bool)


def compare_values(a, b):
    if isinstance(a, str) and isinstance(b, str):
        return locale.strcoll(a, b)
    if _is_number(a) and _is_number(b):
        return a - b
    return 0


def sort_records(records, state):
    """Stable sort by ``state.field``; unsorted when no field is set."""
    if not state.field:
        return list(records)

    def compare(x, y):
        result = compare_values(x.get(state.field), y.get(state.field))
        return -result if state.direction == DESC else result

    return sorted(records, key=cmp_to_key(compare))


def filter_records(records, field, value, predicates=None):
    if value in (None, '', 'all'):
        return list(records)

    predicate = (predicates or {}).get(value)
    if predicate is not None:
        return [r for r in records if predicate(r)]
    return [r for r in records if r.get(field) == value]


def count_by(records, field):
    return dict(Counter(r.get(field) for r in records))


class PageSummary:
    """Display-only pagination footer: everything is on one page."""

    def __init__(self, total):
        self.total = total
        self.first = 1 if total else 0
        self.last = total
        self.has_prev = False
        self.has_next = False

    @property
    def text(self):
        return f"Showing {self.first} to {self.last} of {self.total} results"


def _parse_timestamp(value):
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def bandwidth_series(metrics):
    """Chart series for bandwidth metrics, oldest point first."""
    points = list(reversed(metrics))
    return {
        'labels': [_parse_timestamp(m['timestamp']).strftime('%H:%M') for m in points],
        'incoming': [m['incoming'] for m in points],
        'outgoing': [m['outgoing'] for m in points],
    }


def status_series(devices):
    counts = count_by(devices, 'status')
    labels = [status for status in ('online', 'warning', 'offline', 'maintenance') if counts.get(status)]
    return {'labels': labels, 'values': [counts[status] for status in labels]}


def utilization(device):
    max_bandwidth = device.get('maxBandwidth') or 0
    if max_bandwidth <= 0:
        return 0
    return round(device.get('bandwidth', 0) / max_bandwidth * 100)


def format_relative_time(value, now=None):
    if not value:
        return 'Never'

    now = now or utcnow()
    seconds = int((now - _parse_timestamp(value)).total_seconds())
    if seconds < 60:
        return 'just now'
    if seconds < 3600:
        return f"{seconds // 60} min ago"
    if seconds < 86400:
        return f"{seconds // 3600} h ago"
    return f"{seconds // 86400} d ago"
