from datetime import datetime

from conftest import device_payload, event_payload, rule_payload
from models import utcnow


def _ts(value):
    return datetime.fromisoformat(value)


def test_health_reports_storage_backend(client, app):
    resp = client.get('/api/health')
    assert resp.status_code == 200
    assert resp.get_json()['storage'] == app.config['STORAGE_BACKEND']


def test_create_device_then_fetch_it(client):
    before = utcnow()
    resp = client.post('/api/devices', json=device_payload())
    assert resp.status_code == 201

    created = resp.get_json()
    assert created['id'] >= 1
    assert created['ipAddress'] == '10.0.0.1'
    assert created['model'] is None
    assert _ts(created['lastActivity']) >= before.replace(microsecond=0)

    fetched = client.get(f"/api/devices/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.get_json() == created

    listed = client.get('/api/devices').get_json()
    assert listed == [created]


def test_create_device_applies_defaults(client):
    resp = client.post('/api/devices', json={'name': 'Switch', 'type': 'switch', 'ipAddress': '10.0.0.2'})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body['status'] == 'online'
    assert body['bandwidth'] == 0
    assert body['maxBandwidth'] == 1000


def test_create_device_rejects_invalid_body(client):
    resp = client.post('/api/devices', json=device_payload(type='toaster', bandwidth='fast'))
    assert resp.status_code == 400

    body = resp.get_json()
    assert body['error'] == 'Invalid device data'
    fields = {e['field'] for e in body['errors']}
    assert {'type', 'bandwidth'} <= fields


def test_create_device_rejects_unknown_and_missing_fields(client):
    resp = client.post('/api/devices', json={'name': 'x', 'colour': 'red'})
    assert resp.status_code == 400
    fields = {e['field'] for e in resp.get_json()['errors']}
    assert 'colour' in fields
    assert 'ipAddress' in fields


def test_create_device_rejects_malformed_json(client):
    resp = client.post('/api/devices', data='{not json', content_type='application/json')
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Invalid device data'


def test_create_device_rejects_bad_ip(client):
    resp = client.post('/api/devices', json=device_payload(ipAddress='999.1.1.1'))
    assert resp.status_code == 400
    assert resp.get_json()['errors'][0]['field'] == 'ipAddress'


def test_duplicate_ip_is_a_field_error(client):
    assert client.post('/api/devices', json=device_payload()).status_code == 201

    resp = client.post('/api/devices', json=device_payload(name='Other'))
    assert resp.status_code == 400
    assert resp.get_json()['errors'] == [
        {'field': 'ipAddress', 'message': 'IP address 10.0.0.1 is already assigned'}
    ]


def test_device_ids_are_never_reused(client):
    first = client.post('/api/devices', json=device_payload()).get_json()
    client.delete(f"/api/devices/{first['id']}")

    second = client.post('/api/devices', json=device_payload(ipAddress='10.0.0.9')).get_json()
    assert second['id'] > first['id']


def test_empty_update_only_touches_last_activity(client):
    created = client.post('/api/devices', json=device_payload()).get_json()

    resp = client.put(f"/api/devices/{created['id']}", json={})
    assert resp.status_code == 200

    updated = resp.get_json()
    assert _ts(updated['lastActivity']) > _ts(created['lastActivity'])
    for key in created:
        if key != 'lastActivity':
            assert updated[key] == created[key]


def test_partial_device_update(client):
    created = client.post('/api/devices', json=device_payload()).get_json()

    resp = client.put(f"/api/devices/{created['id']}", json={'status': 'maintenance', 'location': 'Rack 4'})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['status'] == 'maintenance'
    assert body['location'] == 'Rack 4'
    assert body['name'] == created['name']


def test_update_rejects_explicit_null_for_required_field(client):
    created = client.post('/api/devices', json=device_payload()).get_json()

    resp = client.put(f"/api/devices/{created['id']}", json={'name': None})
    assert resp.status_code == 400


def test_update_to_taken_ip_fails(client):
    client.post('/api/devices', json=device_payload())
    other = client.post('/api/devices', json=device_payload(ipAddress='10.0.0.2')).get_json()

    resp = client.put(f"/api/devices/{other['id']}", json={'ipAddress': '10.0.0.1'})
    assert resp.status_code == 400
    assert resp.get_json()['errors'][0]['field'] == 'ipAddress'


def test_unknown_and_malformed_ids(client):
    assert client.get('/api/devices/999').status_code == 404
    assert client.put('/api/devices/999', json={}).status_code == 404
    assert client.delete('/api/devices/999').status_code == 404

    resp = client.get('/api/devices/abc')
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid device ID'}


def test_delete_twice_returns_404(client):
    created = client.post('/api/devices', json=device_payload()).get_json()

    first = client.delete(f"/api/devices/{created['id']}")
    assert first.status_code == 204
    assert first.data == b''

    second = client.delete(f"/api/devices/{created['id']}")
    assert second.status_code == 404
    assert second.get_json() == {'error': 'Device not found'}


def test_bandwidth_metrics_filter_and_limit(client):
    device = client.post('/api/devices', json=device_payload()).get_json()
    for i in range(3):
        resp = client.post('/api/bandwidth-metrics', json={'deviceId': device['id'], 'incoming': i, 'outgoing': 1})
        assert resp.status_code == 201
    client.post('/api/bandwidth-metrics', json={'incoming': 9, 'outgoing': 9})

    assert len(client.get('/api/bandwidth-metrics').get_json()) == 4

    filtered = client.get(f"/api/bandwidth-metrics?deviceId={device['id']}").get_json()
    assert len(filtered) == 3
    assert all(m['deviceId'] == device['id'] for m in filtered)
    # newest first
    assert [m['incoming'] for m in filtered] == [2, 1, 0]

    assert len(client.get('/api/bandwidth-metrics?limit=2').get_json()) == 2


def test_bandwidth_metric_rejects_negative_values(client):
    resp = client.post('/api/bandwidth-metrics', json={'incoming': -1, 'outgoing': 1})
    assert resp.status_code == 400


def test_system_metrics_latest_and_history(client):
    assert client.get('/api/system-metrics/latest').status_code == 404
    assert client.get('/api/system-metrics/history').get_json() == []

    for warnings in (1, 2):
        resp = client.post('/api/system-metrics', json={
            'activeDevices': 10, 'totalBandwidth': 2.4, 'warnings': warnings, 'uptime': 99.9
        })
        assert resp.status_code == 201

    latest = client.get('/api/system-metrics/latest').get_json()
    assert latest['warnings'] == 2

    history = client.get('/api/system-metrics/history').get_json()
    assert [m['warnings'] for m in history] == [2, 1]


def test_system_metric_uptime_is_a_percentage(client):
    resp = client.post('/api/system-metrics', json={
        'activeDevices': 1, 'totalBandwidth': 1, 'warnings': 0, 'uptime': 120
    })
    assert resp.status_code == 400


def test_generate_mock_data_counts(client):
    for i, status in enumerate(['online', 'warning', 'offline', 'maintenance']):
        client.post('/api/devices', json=device_payload(ipAddress=f'10.0.0.{i + 1}', status=status))

    resp = client.post('/api/generate-mock-data')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['bandwidthMetrics'] == 48
    assert body['systemMetrics'] == 24

    assert len(client.get('/api/bandwidth-metrics?limit=1000').get_json()) == 48
    assert len(client.get('/api/system-metrics/history?limit=1000').get_json()) == 24


def test_security_event_lifecycle(client):
    resp = client.post('/api/security-events', json=event_payload())
    assert resp.status_code == 201
    event = resp.get_json()
    assert event['status'] == 'new'

    resp = client.put(f"/api/security-events/{event['id']}", json={'status': 'investigating'})
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'investigating'

    assert client.get('/api/security-events?status=new').get_json() == []
    assert len(client.get('/api/security-events?status=investigating').get_json()) == 1

    assert client.delete(f"/api/security-events/{event['id']}").status_code == 204
    assert client.get(f"/api/security-events/{event['id']}").status_code == 404


def test_security_event_blank_target_is_stored_as_null(client):
    resp = client.post('/api/security-events', json=event_payload(targetIp=''))
    assert resp.status_code == 201
    assert resp.get_json()['targetIp'] is None


def test_security_event_rejects_unknown_status(client):
    resp = client.post('/api/security-events', json=event_payload(status='ignored'))
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Invalid security event data'


def test_disable_ids_rule_bumps_updated_at(client):
    rule = client.post('/api/ids-rules', json=rule_payload()).get_json()
    assert rule['enabled'] is True
    assert rule['createdAt'] == rule['updatedAt']

    resp = client.put(f"/api/ids-rules/{rule['id']}", json={'enabled': False})
    assert resp.status_code == 200
    updated = resp.get_json()
    assert updated['enabled'] is False
    assert _ts(updated['updatedAt']) > _ts(rule['updatedAt'])
    assert updated['createdAt'] == rule['createdAt']


def test_ids_rule_enabled_must_be_boolean(client):
    rule = client.post('/api/ids-rules', json=rule_payload()).get_json()

    resp = client.put(f"/api/ids-rules/{rule['id']}", json={'enabled': 'no'})
    assert resp.status_code == 400


def test_password_entry_requires_existing_vault(client):
    resp = client.post('/api/password-entries', json={
        'vaultId': 42, 'title': 'Router', 'encryptedPassword': 'secret'
    })
    assert resp.status_code == 400
    assert resp.get_json()['errors'][0]['field'] == 'vaultId'


def test_password_entries_round_trip_and_vault_cascade(client):
    vault = client.post('/api/password-vaults', json={'name': 'Network'}).get_json()
    other = client.post('/api/password-vaults', json={'name': 'Other'}).get_json()

    resp = client.post('/api/password-entries', json={
        'vaultId': vault['id'],
        'title': 'Router Admin',
        'username': 'admin',
        'email': 'admin@example.com',
        'encryptedPassword': 's3cret',
        'website': 'https://10.0.0.1',
    })
    assert resp.status_code == 201
    entry = resp.get_json()
    assert entry['encryptedPassword'] == 's3cret'
    assert entry['isFavorite'] is False
    client.post('/api/password-entries', json={
        'vaultId': other['id'], 'title': 'Elsewhere', 'encryptedPassword': 'x'
    })

    in_vault = client.get(f"/api/password-entries?vaultId={vault['id']}").get_json()
    assert [e['id'] for e in in_vault] == [entry['id']]

    assert client.delete(f"/api/password-vaults/{vault['id']}").status_code == 204
    assert client.get(f"/api/password-entries/{entry['id']}").status_code == 404
    assert len(client.get('/api/password-entries').get_json()) == 1


def test_password_entry_rejects_bad_email_and_url(client):
    vault = client.post('/api/password-vaults', json={'name': 'Network'}).get_json()

    resp = client.post('/api/password-entries', json={
        'vaultId': vault['id'], 'title': 'x', 'encryptedPassword': 'x',
        'email': 'not-an-email', 'website': 'ftp:/nowhere',
    })
    assert resp.status_code == 400
    fields = {e['field'] for e in resp.get_json()['errors']}
    assert fields == {'email', 'website'}


def test_password_entries_order_by_last_used(client):
    vault = client.post('/api/password-vaults', json={'name': 'Network'}).get_json()

    def add(title, last_used=None):
        payload = {'vaultId': vault['id'], 'title': title, 'encryptedPassword': 'x'}
        if last_used:
            payload['lastUsed'] = last_used
        return client.post('/api/password-entries', json=payload).get_json()

    never = add('never')
    old = add('old', '2024-01-01T10:00:00')
    recent = add('recent', '2025-06-01T10:00:00')

    entries = client.get(f"/api/password-entries?vaultId={vault['id']}").get_json()
    assert [e['id'] for e in entries] == [recent['id'], old['id'], never['id']]


def test_unknown_api_path_returns_json_404(client):
    resp = client.get('/api/nothing-here')
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Not found'}


def test_wrong_method_returns_json_405(client):
    resp = client.patch('/api/devices')
    assert resp.status_code == 405
    assert resp.get_json() == {'error': 'Method not allowed'}
