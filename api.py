from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError
import logging

from models import utcnow
from mock_data import generate_mock_data
from schemas import (
    BandwidthMetricCreate, DeviceCreate, DeviceUpdate, IdsRuleCreate, IdsRuleUpdate,
    PasswordEntryCreate, PasswordEntryUpdate, PasswordVaultCreate, PasswordVaultUpdate,
    SecurityEventCreate, SecurityEventUpdate, SystemMetricCreate, format_errors,
)
from storage import (
    DEFAULT_BANDWIDTH_LIMIT, DEFAULT_EVENT_LIMIT, DEFAULT_HISTORY_LIMIT, StorageError,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')

STORAGE_EXTENSION = 'netwatch.storage'


def get_storage():
    return current_app.extensions[STORAGE_EXTENSION]


def _parse_id(raw_id):
    try:
        return int(raw_id)
    except (TypeError, ValueError):
        return None


def _parse_body(schema):
    return schema.model_validate_json(request.get_data() or b'')


def _limit(default):
    limit = request.args.get('limit', default, type=int)
    return max(1, min(limit, current_app.config.get('MAX_LIST_LIMIT', 1000)))


def _invalid(message, errors):
    return jsonify({'error': message, 'errors': errors}), 400


def _storage_errors(e):
    return [{'field': e.field, 'message': e.message}]


@api_bp.route('/health', methods=['GET'])
def health():
    return jsonify({
        'status': 'healthy',
        'timestamp': utcnow().isoformat(),
        'storage': get_storage().name
    })


# Devices

@api_bp.route('/devices', methods=['GET'])
def get_devices():
    try:
        devices = get_storage().get_devices()
        return jsonify([d.to_json() for d in devices])

    except Exception as e:
        logger.error(f"Error getting devices: {e}")
        return jsonify({'error': 'Failed to fetch devices'}), 500


@api_bp.route('/devices/<device_id>', methods=['GET'])
def get_device(device_id):
    device_id = _parse_id(device_id)
    if device_id is None:
        return jsonify({'error': 'Invalid device ID'}), 400

    try:
        device = get_storage().get_device(device_id)
        if not device:
            return jsonify({'error': 'Device not found'}), 404

        return jsonify(device.to_json())

    except Exception as e:
        logger.error(f"Error getting device: {e}")
        return jsonify({'error': 'Failed to fetch device'}), 500


@api_bp.route('/devices', methods=['POST'])
def create_device():
    try:
        data = _parse_body(DeviceCreate)
        device = get_storage().create_device(data)
        return jsonify(device.to_json()), 201

    except ValidationError as e:
        return _invalid('Invalid device data', format_errors(e))
    except StorageError as e:
        return _invalid('Invalid device data', _storage_errors(e))
    except Exception as e:
        logger.error(f"Error creating device: {e}")
        return jsonify({'error': 'Failed to create device'}), 500


@api_bp.route('/devices/<device_id>', methods=['PUT'])
def update_device(device_id):
    device_id = _parse_id(device_id)
    if device_id is None:
        return jsonify({'error': 'Invalid device ID'}), 400

    try:
        data = _parse_body(DeviceUpdate)
        device = get_storage().update_device(device_id, data)
        if not device:
            return jsonify({'error': 'Device not found'}), 404

        return jsonify(device.to_json())

    except ValidationError as e:
        return _invalid('Invalid device data', format_errors(e))
    except StorageError as e:
        return _invalid('Invalid device data', _storage_errors(e))
    except Exception as e:
        logger.error(f"Error updating device: {e}")
        return jsonify({'error': 'Failed to update device'}), 500


@api_bp.route('/devices/<device_id>', methods=['DELETE'])
def delete_device(device_id):
    device_id = _parse_id(device_id)
    if device_id is None:
        return jsonify({'error': 'Invalid device ID'}), 400

    try:
        if not get_storage().delete_device(device_id):
            return jsonify({'error': 'Device not found'}), 404

        return '', 204

    except Exception as e:
        logger.error(f"Error deleting device: {e}")
        return jsonify({'error': 'Failed to delete device'}), 500


# Bandwidth metrics

@api_bp.route('/bandwidth-metrics', methods=['GET'])
def get_bandwidth_metrics():
    try:
        device_id = request.args.get('deviceId', type=int)
        limit = _limit(DEFAULT_BANDWIDTH_LIMIT)

        metrics = get_storage().get_bandwidth_metrics(device_id=device_id, limit=limit)
        return jsonify([m.to_json() for m in metrics])

    except Exception as e:
        logger.error(f"Error getting bandwidth metrics: {e}")
        return jsonify({'error': 'Failed to fetch bandwidth metrics'}), 500


@api_bp.route('/bandwidth-metrics', methods=['POST'])
def create_bandwidth_metric():
    try:
        data = _parse_body(BandwidthMetricCreate)
        metric = get_storage().create_bandwidth_metric(data)
        return jsonify(metric.to_json()), 201

    except ValidationError as e:
        return _invalid('Invalid metric data', format_errors(e))
    except Exception as e:
        logger.error(f"Error creating bandwidth metric: {e}")
        return jsonify({'error': 'Failed to create bandwidth metric'}), 500


# System metrics

@api_bp.route('/system-metrics/latest', methods=['GET'])
def get_latest_system_metric():
    try:
        metric = get_storage().get_latest_system_metric()
        if not metric:
            return jsonify({'error': 'No system metrics found'}), 404

        return jsonify(metric.to_json())

    except Exception as e:
        logger.error(f"Error getting system metrics: {e}")
        return jsonify({'error': 'Failed to fetch system metrics'}), 500


@api_bp.route('/system-metrics/history', methods=['GET'])
def get_system_metrics_history():
    try:
        metrics = get_storage().get_system_metrics_history(limit=_limit(DEFAULT_HISTORY_LIMIT))
        return jsonify([m.to_json() for m in metrics])

    except Exception as e:
        logger.error(f"Error getting system metrics history: {e}")
        return jsonify({'error': 'Failed to fetch system metrics history'}), 500


@api_bp.route('/system-metrics', methods=['POST'])
def create_system_metric():
    try:
        data = _parse_body(SystemMetricCreate)
        metric = get_storage().create_system_metric(data)
        return jsonify(metric.to_json()), 201

    except ValidationError as e:
        return _invalid('Invalid metric data', format_errors(e))
    except Exception as e:
        logger.error(f"Error creating system metric: {e}")
        return jsonify({'error': 'Failed to create system metric'}), 500


@api_bp.route('/generate-mock-data', methods=['POST'])
def create_mock_data():
    try:
        counts = generate_mock_data(get_storage())
        return jsonify({'message': 'Mock data generated successfully', **counts})

    except Exception as e:
        logger.error(f"Error generating mock data: {e}")
        return jsonify({'error': 'Failed to generate mock data'}), 500


# Security events

@api_bp.route('/security-events', methods=['GET'])
def get_security_events():
    try:
        status = request.args.get('status')
        limit = _limit(DEFAULT_EVENT_LIMIT)

        events = get_storage().get_security_events(status=status, limit=limit)
        return jsonify([e.to_json() for e in events])

    except Exception as e:
        logger.error(f"Error getting security events: {e}")
        return jsonify({'error': 'Failed to fetch security events'}), 500


@api_bp.route('/security-events/<event_id>', methods=['GET'])
def get_security_event(event_id):
    event_id = _parse_id(event_id)
    if event_id is None:
        return jsonify({'error': 'Invalid event ID'}), 400

    try:
        event = get_storage().get_security_event(event_id)
        if not event:
            return jsonify({'error': 'Security event not found'}), 404

        return jsonify(event.to_json())

    except Exception as e:
        logger.error(f"Error getting security event: {e}")
        return jsonify({'error': 'Failed to fetch security event'}), 500


@api_bp.route('/security-events', methods=['POST'])
def create_security_event():
    try:
        data = _parse_body(SecurityEventCreate)
        event = get_storage().create_security_event(data)
        return jsonify(event.to_json()), 201

    except ValidationError as e:
        return _invalid('Invalid security event data', format_errors(e))
    except Exception as e:
        logger.error(f"Error creating security event: {e}")
        return jsonify({'error': 'Failed to create security event'}), 500


@api_bp.route('/security-events/<event_id>', methods=['PUT'])
def update_security_event(event_id):
    event_id = _parse_id(event_id)
    if event_id is None:
        return jsonify({'error': 'Invalid event ID'}), 400

    try:
        data = _parse_body(SecurityEventUpdate)
        event = get_storage().update_security_event(event_id, data)
        if not event:
            return jsonify({'error': 'Security event not found'}), 404

        return jsonify(event.to_json())

    except ValidationError as e:
        return _invalid('Invalid security event data', format_errors(e))
    except Exception as e:
        logger.error(f"Error updating security event: {e}")
        return jsonify({'error': 'Failed to update security event'}), 500


@api_bp.route('/security-events/<event_id>', methods=['DELETE'])
def delete_security_event(event_id):
    event_id = _parse_id(event_id)
    if event_id is None:
        return jsonify({'error': 'Invalid event ID'}), 400

    try:
        if not get_storage().delete_security_event(event_id):
            return jsonify({'error': 'Security event not found'}), 404

        return '', 204

    except Exception as e:
        logger.error(f"Error deleting security event: {e}")
        return jsonify({'error': 'Failed to delete security event'}), 500


# IDS rules

@api_bp.route('/ids-rules', methods=['GET'])
def get_ids_rules():
    try:
        rules = get_storage().get_ids_rules()
        return jsonify([r.to_json() for r in rules])

    except Exception as e:
        logger.error(f"Error getting IDS rules: {e}")
        return jsonify({'error': 'Failed to fetch IDS rules'}), 500


@api_bp.route('/ids-rules/<rule_id>', methods=['GET'])
def get_ids_rule(rule_id):
    rule_id = _parse_id(rule_id)
    if rule_id is None:
        return jsonify({'error': 'Invalid rule ID'}), 400

    try:
        rule = get_storage().get_ids_rule(rule_id)
        if not rule:
            return jsonify({'error': 'IDS rule not found'}), 404

        return jsonify(rule.to_json())

    except Exception as e:
        logger.error(f"Error getting IDS rule: {e}")
        return jsonify({'error': 'Failed to fetch IDS rule'}), 500


@api_bp.route('/ids-rules', methods=['POST'])
def create_ids_rule():
    try:
        data = _parse_body(IdsRuleCreate)
        rule = get_storage().create_ids_rule(data)
        return jsonify(rule.to_json()), 201

    except ValidationError as e:
        return _invalid('Invalid IDS rule data', format_errors(e))
    except Exception as e:
        logger.error(f"Error creating IDS rule: {e}")
        return jsonify({'error': 'Failed to create IDS rule'}), 500


@api_bp.route('/ids-rules/<rule_id>', methods=['PUT'])
def update_ids_rule(rule_id):
    rule_id = _parse_id(rule_id)
    if rule_id is None:
        return jsonify({'error': 'Invalid rule ID'}), 400

    try:
        data = _parse_body(IdsRuleUpdate)
        rule = get_storage().update_ids_rule(rule_id, data)
        if not rule:
            return jsonify({'error': 'IDS rule not found'}), 404

        return jsonify(rule.to_json())

    except ValidationError as e:
        return _invalid('Invalid IDS rule data', format_errors(e))
    except Exception as e:
        logger.error(f"Error updating IDS rule: {e}")
        return jsonify({'error': 'Failed to update IDS rule'}), 500


@api_bp.route('/ids-rules/<rule_id>', methods=['DELETE'])
def delete_ids_rule(rule_id):
    rule_id = _parse_id(rule_id)
    if rule_id is None:
        return jsonify({'error': 'Invalid rule ID'}), 400

    try:
        if not get_storage().delete_ids_rule(rule_id):
            return jsonify({'error': 'IDS rule not found'}), 404

        return '', 204

    except Exception as e:
        logger.error(f"Error deleting IDS rule: {e}")
        return jsonify({'error': 'Failed to delete IDS rule'}), 500


# Password vaults

@api_bp.route('/password-vaults', methods=['GET'])
def get_password_vaults():
    try:
        vaults = get_storage().get_password_vaults()
        return jsonify([v.to_json() for v in vaults])

    except Exception as e:
        logger.error(f"Error getting password vaults: {e}")
        return jsonify({'error': 'Failed to fetch password vaults'}), 500


@api_bp.route('/password-vaults/<vault_id>', methods=['GET'])
def get_password_vault(vault_id):
    vault_id = _parse_id(vault_id)
    if vault_id is None:
        return jsonify({'error': 'Invalid vault ID'}), 400

    try:
        vault = get_storage().get_password_vault(vault_id)
        if not vault:
            return jsonify({'error': 'Password vault not found'}), 404

        return jsonify(vault.to_json())

    except Exception as e:
        logger.error(f"Error getting password vault: {e}")
        return jsonify({'error': 'Failed to fetch password vault'}), 500


@api_bp.route('/password-vaults', methods=['POST'])
def create_password_vault():
    try:
        data = _parse_body(PasswordVaultCreate)
        vault = get_storage().create_password_vault(data)
        return jsonify(vault.to_json()), 201

    except ValidationError as e:
        return _invalid('Invalid vault data', format_errors(e))
    except Exception as e:
        logger.error(f"Error creating password vault: {e}")
        return jsonify({'error': 'Failed to create password vault'}), 500


@api_bp.route('/password-vaults/<vault_id>', methods=['PUT'])
def update_password_vault(vault_id):
    vault_id = _parse_id(vault_id)
    if vault_id is None:
        return jsonify({'error': 'Invalid vault ID'}), 400

    try:
        data = _parse_body(PasswordVaultUpdate)
        vault = get_storage().update_password_vault(vault_id, data)
        if not vault:
            return jsonify({'error': 'Password vault not found'}), 404

        return jsonify(vault.to_json())

    except ValidationError as e:
        return _invalid('Invalid vault data', format_errors(e))
    except Exception as e:
        logger.error(f"Error updating password vault: {e}")
        return jsonify({'error': 'Failed to update password vault'}), 500


@api_bp.route('/password-vaults/<vault_id>', methods=['DELETE'])
def delete_password_vault(vault_id):
    vault_id = _parse_id(vault_id)
    if vault_id is None:
        return jsonify({'error': 'Invalid vault ID'}), 400

    try:
        if not get_storage().delete_password_vault(vault_id):
            return jsonify({'error': 'Password vault not found'}), 404

        return '', 204

    except Exception as e:
        logger.error(f"Error deleting password vault: {e}")
        return jsonify({'error': 'Failed to delete password vault'}), 500


# Password entries

@api_bp.route('/password-entries', methods=['GET'])
def get_password_entries():
    try:
        vault_id = request.args.get('vaultId', type=int)

        entries = get_storage().get_password_entries(vault_id=vault_id)
        return jsonify([e.to_json() for e in entries])

    except Exception as e:
        logger.error(f"Error getting password entries: {e}")
        return jsonify({'error': 'Failed to fetch password entries'}), 500


@api_bp.route('/password-entries/<entry_id>', methods=['GET'])
def get_password_entry(entry_id):
    entry_id = _parse_id(entry_id)
    if entry_id is None:
        return jsonify({'error': 'Invalid entry ID'}), 400

    try:
        entry = get_storage().get_password_entry(entry_id)
        if not entry:
            return jsonify({'error': 'Password entry not found'}), 404

        return jsonify(entry.to_json())

    except Exception as e:
        logger.error(f"Error getting password entry: {e}")
        return jsonify({'error': 'Failed to fetch password entry'}), 500


@api_bp.route('/password-entries', methods=['POST'])
def create_password_entry():
    try:
        data = _parse_body(PasswordEntryCreate)
        entry = get_storage().create_password_entry(data)
        return jsonify(entry.to_json()), 201

    except ValidationError as e:
        return _invalid('Invalid password entry data', format_errors(e))
    except StorageError as e:
        return _invalid('Invalid password entry data', _storage_errors(e))
    except Exception as e:
        logger.error(f"Error creating password entry: {e}")
        return jsonify({'error': 'Failed to create password entry'}), 500


@api_bp.route('/password-entries/<entry_id>', methods=['PUT'])
def update_password_entry(entry_id):
    entry_id = _parse_id(entry_id)
    if entry_id is None:
        return jsonify({'error': 'Invalid entry ID'}), 400

    try:
        data = _parse_body(PasswordEntryUpdate)
        entry = get_storage().update_password_entry(entry_id, data)
        if not entry:
            return jsonify({'error': 'Password entry not found'}), 404

        return jsonify(entry.to_json())

    except ValidationError as e:
        return _invalid('Invalid password entry data', format_errors(e))
    except StorageError as e:
        return _invalid('Invalid password entry data', _storage_errors(e))
    except Exception as e:
        logger.error(f"Error updating password entry: {e}")
        return jsonify({'error': 'Failed to update password entry'}), 500


@api_bp.route('/password-entries/<entry_id>', methods=['DELETE'])
def delete_password_entry(entry_id):
    entry_id = _parse_id(entry_id)
    if entry_id is None:
        return jsonify({'error': 'Invalid entry ID'}), 400

    try:
        if not get_storage().delete_password_entry(entry_id):
            return jsonify({'error': 'Password entry not found'}), 404

        return '', 204

    except Exception as e:
        logger.error(f"Error deleting password entry: {e}")
        return jsonify({'error': 'Failed to delete password entry'}), 500


def create_api(app):
    app.register_blueprint(api_bp)

    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith(api_bp.url_prefix):
            return jsonify({'error': 'Not found'}), 404
        return e

    @app.errorhandler(405)
    def method_not_allowed(e):
        if request.path.startswith(api_bp.url_prefix):
            return jsonify({'error': 'Method not allowed'}), 405
        return e

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"Internal server error: {e}")
        return jsonify({'error': 'Internal server error'}), 500
