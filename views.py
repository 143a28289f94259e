import logging

import requests
from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from client import ApiError
from schemas import DEVICE_STATUSES, DEVICE_TYPES, EVENT_STATUSES, SEVERITIES
from table_state import (
    EVENT_PREDICATES, PageSummary, SortState, bandwidth_series, count_by, filter_records,
    format_relative_time, sort_records, status_series, utilization,
)

logger = logging.getLogger(__name__)

CLIENT_EXTENSION = 'netwatch.client'

# Query parameters carried across a form POST and its redirect
KEPT_ARGS = ('sort', 'dir', 'type', 'status', 'severity', 'vault')

DEVICE_SORT_FIELDS = ('id', 'name', 'bandwidth')

views_bp = Blueprint('views', __name__)


@views_bp.app_template_filter('relative_time')
def relative_time_filter(value):
    return format_relative_time(value)


@views_bp.app_context_processor
def inject_choices():
    return {
        'device_types': DEVICE_TYPES,
        'device_statuses': DEVICE_STATUSES,
        'severities': SEVERITIES,
        'event_statuses': EVENT_STATUSES,
        'view_url': view_url,
    }


def get_client():
    return current_app.extensions[CLIENT_EXTENSION]


def _kept_args():
    return {key: value for key, value in request.args.items() if key in KEPT_ARGS and value}


def view_url(endpoint, **extra):
    """URL for ``endpoint`` carrying the current sort, filter and vault selection."""
    args = _kept_args()
    args.update(extra)
    return url_for(endpoint, **args)


def _back(endpoint, **extra):
    return redirect(view_url(endpoint, **extra))


def _sort_links(endpoint, state, fields):
    links = {}
    for field in fields:
        toggled = state.toggle(field)
        links[field] = view_url(endpoint, sort=toggled.field, dir=toggled.direction)
    return links


def _selected_id(name):
    return request.args.get(name, type=int)


def _run_mutation(action, success_message, *args):
    """Call a client mutation, flash the outcome, and report whether it worked."""
    try:
        action(*args)
    except ApiError as e:
        flash(str(e), 'error')
        return False
    except requests.RequestException as e:
        logger.error(f"API unreachable: {e}")
        flash('API unreachable', 'error')
        return False

    flash(success_message, 'success')
    return True


# Form conversion. Numbers that do not parse are sent as-is so the API
# reports them as field errors.

def _text(name, optional=False):
    value = request.form.get(name)
    if value is None:
        return None
    value = value.strip()
    if optional and not value:
        return None
    return value


def _number(name):
    value = request.form.get(name, '').strip()
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return value


def _flag(name):
    return request.form.get(name) in ('on', 'true', '1')


def _payload(**values):
    return {key: value for key, value in values.items() if value is not None}


def _device_form(partial=False):
    payload = _payload(
        name=_text('name'),
        type=_text('type'),
        ipAddress=_text('ipAddress'),
        status=_text('status'),
        bandwidth=_number('bandwidth'),
        maxBandwidth=_number('maxBandwidth'),
    )
    for key in ('model', 'location'):
        value = _text(key, optional=True)
        if value is not None or partial:
            payload[key] = value
    return payload


def _rule_form():
    payload = _payload(
        name=_text('name'),
        description=_text('description'),
        pattern=_text('pattern'),
        severity=_text('severity'),
    )
    payload['enabled'] = _flag('enabled')
    return payload


def _entry_form(partial=False):
    payload = _payload(
        title=_text('title'),
        encryptedPassword=request.form.get('encryptedPassword') or None,
    )
    for key in ('username', 'email', 'website', 'category', 'notes'):
        value = _text(key, optional=True)
        if value is not None or partial:
            payload[key] = value
    payload['isFavorite'] = _flag('isFavorite')
    return payload


# Dashboard

@views_bp.route('/')
def dashboard():
    client = get_client()
    devices = client.devices(interval=client.slow)
    system = client.latest_system_metric()
    bandwidth = client.bandwidth_metrics(limit=24)

    return render_template(
        'dashboard.html',
        system=system,
        bandwidth=bandwidth,
        bandwidth_chart=bandwidth_series(bandwidth.data) if bandwidth.data else None,
        status_chart=status_series(devices.data) if devices.data else None,
        devices=devices,
        utilization=utilization,
    )


@views_bp.route('/generate-mock-data', methods=['POST'])
def generate_mock_data():
    _run_mutation(get_client().generate_mock_data, 'Mock data generated')
    return redirect(url_for('views.dashboard'))


# Devices

@views_bp.route('/devices')
def devices():
    result = get_client().devices()
    sort = SortState.from_args(request.args, DEVICE_SORT_FIELDS)
    type_filter = request.args.get('type', 'all')

    rows = None
    editing = None
    if result.data is not None:
        rows = sort_records(filter_records(result.data, 'type', type_filter), sort)
        edit_id = _selected_id('edit')
        editing = next((d for d in result.data if d['id'] == edit_id), None)

    return render_template(
        'devices.html',
        result=result,
        rows=rows,
        sort=sort,
        sort_links=_sort_links('views.devices', sort, DEVICE_SORT_FIELDS),
        type_filter=type_filter,
        editing=editing,
        summary=PageSummary(len(rows or [])),
        utilization=utilization,
    )


@views_bp.route('/devices', methods=['POST'])
def create_device():
    _run_mutation(get_client().create_device, 'Device added', _device_form())
    return _back('views.devices')


@views_bp.route('/devices/<int:device_id>/edit', methods=['POST'])
def update_device(device_id):
    if not _run_mutation(get_client().update_device, 'Device updated', device_id, _device_form(partial=True)):
        return _back('views.devices', edit=device_id)
    return _back('views.devices')


@views_bp.route('/devices/<int:device_id>/delete', methods=['POST'])
def delete_device(device_id):
    _run_mutation(get_client().delete_device, 'Device deleted', device_id)
    return _back('views.devices')


# Security

@views_bp.route('/security')
def security():
    client = get_client()
    events = client.security_events()
    rules = client.ids_rules()
    status_filter = request.args.get('status', 'all')
    severity_filter = request.args.get('severity', 'all')

    event_rows = None
    status_counts = {}
    if events.data is not None:
        event_rows = filter_records(events.data, 'status', status_filter, EVENT_PREDICATES)
        event_rows = filter_records(event_rows, 'severity', severity_filter)
        status_counts = count_by(events.data, 'status')
        status_counts['open'] = len(filter_records(events.data, 'status', 'open', EVENT_PREDICATES))

    editing = None
    if rules.data is not None:
        edit_id = _selected_id('edit')
        editing = next((r for r in rules.data if r['id'] == edit_id), None)

    return render_template(
        'security.html',
        events=events,
        event_rows=event_rows,
        status_counts=status_counts,
        status_filter=status_filter,
        severity_filter=severity_filter,
        rules=rules,
        editing=editing,
        summary=PageSummary(len(event_rows or [])),
    )


@views_bp.route('/security/events/<int:event_id>/status', methods=['POST'])
def update_event_status(event_id):
    payload = {'status': request.form.get('status', '')}
    _run_mutation(get_client().update_security_event, 'Event updated', event_id, payload)
    return _back('views.security')


@views_bp.route('/security/events/<int:event_id>/delete', methods=['POST'])
def delete_event(event_id):
    _run_mutation(get_client().delete_security_event, 'Event deleted', event_id)
    return _back('views.security')


@views_bp.route('/security/rules', methods=['POST'])
def create_rule():
    _run_mutation(get_client().create_ids_rule, 'Rule created', _rule_form())
    return _back('views.security')


@views_bp.route('/security/rules/<int:rule_id>/edit', methods=['POST'])
def update_rule(rule_id):
    if not _run_mutation(get_client().update_ids_rule, 'Rule updated', rule_id, _rule_form()):
        return _back('views.security', edit=rule_id)
    return _back('views.security')


@views_bp.route('/security/rules/<int:rule_id>/toggle', methods=['POST'])
def toggle_rule(rule_id):
    enabled = _flag('enabled')
    message = 'Rule enabled' if enabled else 'Rule disabled'
    _run_mutation(get_client().update_ids_rule, message, rule_id, {'enabled': enabled})
    return _back('views.security')


@views_bp.route('/security/rules/<int:rule_id>/delete', methods=['POST'])
def delete_rule(rule_id):
    _run_mutation(get_client().delete_ids_rule, 'Rule deleted', rule_id)
    return _back('views.security')


# Passwords

@views_bp.route('/passwords')
def passwords():
    client = get_client()
    vaults = client.password_vaults()

    selected = None
    if vaults.data:
        vault_id = _selected_id('vault')
        selected = next((v for v in vaults.data if v['id'] == vault_id), vaults.data[0])

    entries = client.password_entries(selected['id']) if selected else None
    editing = None
    if entries is not None and entries.data is not None:
        edit_id = _selected_id('edit')
        editing = next((e for e in entries.data if e['id'] == edit_id), None)

    return render_template(
        'passwords.html',
        vaults=vaults,
        selected=selected,
        entries=entries,
        editing=editing,
        revealed=_selected_id('show'),
    )


@views_bp.route('/passwords/vaults', methods=['POST'])
def create_vault():
    payload = _payload(name=_text('name'), description=_text('description', optional=True))
    _run_mutation(get_client().create_password_vault, 'Vault created', payload)
    return _back('views.passwords')


@views_bp.route('/passwords/vaults/<int:vault_id>/delete', methods=['POST'])
def delete_vault(vault_id):
    _run_mutation(get_client().delete_password_vault, 'Vault deleted', vault_id)
    args = {k: v for k, v in _kept_args().items() if k != 'vault'}
    return redirect(url_for('views.passwords', **args))


@views_bp.route('/passwords/entries', methods=['POST'])
def create_entry():
    payload = _entry_form()
    payload['vaultId'] = request.form.get('vaultId', type=int)
    _run_mutation(get_client().create_password_entry, 'Entry created', payload)
    return _back('views.passwords')


@views_bp.route('/passwords/entries/<int:entry_id>/edit', methods=['POST'])
def update_entry(entry_id):
    if not _run_mutation(get_client().update_password_entry, 'Entry updated', entry_id,
                         _entry_form(partial=True)):
        return _back('views.passwords', edit=entry_id)
    return _back('views.passwords')


@views_bp.route('/passwords/entries/<int:entry_id>/favorite', methods=['POST'])
def toggle_favorite(entry_id):
    payload = {'isFavorite': _flag('isFavorite')}
    _run_mutation(get_client().update_password_entry, 'Favorites updated', entry_id, payload)
    return _back('views.passwords')


@views_bp.route('/passwords/entries/<int:entry_id>/delete', methods=['POST'])
def delete_entry(entry_id):
    _run_mutation(get_client().delete_password_entry, 'Entry deleted', entry_id)
    return _back('views.passwords')
