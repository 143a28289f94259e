import pytest

from app import create_app
from client import query_key
from conftest import device_payload, event_payload, rule_payload
from models import db
from views import CLIENT_EXTENSION

DEVICE_FORM = {
    'name': 'Edge Switch',
    'type': 'switch',
    'ipAddress': '10.0.0.20',
    'status': 'online',
    'bandwidth': '120',
    'maxBandwidth': '1000',
    'model': '',
    'location': '',
}


def _html(resp):
    return resp.get_data(as_text=True)


def test_empty_dashboard(client):
    resp = client.get('/')
    assert resp.status_code == 200
    html = _html(resp)
    assert 'No system metrics recorded yet' in html
    assert 'No devices registered' in html
    assert 'Failed to load data' not in html


def test_generate_mock_data_fills_dashboard(client):
    client.post('/api/devices', json=device_payload())

    resp = client.post('/generate-mock-data', follow_redirects=True)
    html = _html(resp)
    assert 'Mock data generated' in html
    assert 'id="bandwidth-chart"' in html
    assert 'id="status-chart"' in html
    assert 'Core Router R1' in html


def test_add_device_form_keeps_sort(client):
    resp = client.post('/devices?sort=name&dir=desc', data=DEVICE_FORM)
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/devices?sort=name&dir=desc')

    html = _html(client.get(resp.headers['Location']))
    assert 'Device added' in html
    assert 'Edge Switch' in html

    devices = client.get('/api/devices').get_json()
    assert devices[0]['bandwidth'] == 120
    assert devices[0]['model'] is None


def test_invalid_device_form_flashes_error(client):
    form = dict(DEVICE_FORM, ipAddress='not-an-ip', bandwidth='lots')
    html = _html(client.post('/devices', data=form, follow_redirects=True))
    assert 'Invalid device data' in html
    assert 'ipAddress' in html
    assert client.get('/api/devices').get_json() == []


def test_device_table_filter_and_sort(client):
    client.post('/api/devices', json=device_payload(name='Zulu Router'))
    client.post('/api/devices', json=device_payload(name='Alpha Switch', type='switch', ipAddress='10.0.0.2'))
    client.post('/api/devices', json=device_payload(name='Mike Router', ipAddress='10.0.0.3'))

    html = _html(client.get('/devices?type=router&sort=name&dir=asc'))
    assert 'Alpha Switch' not in html
    assert html.index('Mike Router') < html.index('Zulu Router')
    assert 'Showing 1 to 2 of 2 results' in html

    html = _html(client.get('/devices?type=router&sort=name&dir=desc'))
    assert html.index('Zulu Router') < html.index('Mike Router')


def test_edit_dialog_is_prefilled(client):
    device = client.post('/api/devices', json=device_payload(location='Rack 7')).get_json()

    html = _html(client.get(f"/devices?edit={device['id']}"))
    assert 'id="edit-device"' in html
    assert 'value="Rack 7"' in html

    form = dict(DEVICE_FORM, name='Renamed', ipAddress=device['ipAddress'], location='')
    client.post(f"/devices/{device['id']}/edit", data=form)
    updated = client.get(f"/api/devices/{device['id']}").get_json()
    assert updated['name'] == 'Renamed'
    assert updated['location'] is None


def test_delete_device_from_table(client):
    device = client.post('/api/devices', json=device_payload()).get_json()

    html = _html(client.post(f"/devices/{device['id']}/delete", follow_redirects=True))
    assert 'Device deleted' in html
    assert client.get('/api/devices').get_json() == []

    html = _html(client.post(f"/devices/{device['id']}/delete", follow_redirects=True))
    assert 'Device not found' in html


def test_security_page_counts_and_status_change(client):
    event = client.post('/api/security-events', json=event_payload()).get_json()
    client.post('/api/security-events', json=event_payload(status='resolved', sourceIp='10.9.9.9'))

    html = _html(client.get('/security?status=open'))
    assert '178.62.199.34' in html
    assert '10.9.9.9' not in html

    resp = client.post(f"/security/events/{event['id']}/status?status=open", data={'status': 'resolved'})
    assert resp.headers['Location'].endswith('/security?status=open')
    assert client.get(f"/api/security-events/{event['id']}").get_json()['status'] == 'resolved'

    html = _html(client.get('/security?status=open'))
    assert 'No security events' in html


def test_ids_rule_toggle_and_edit(client):
    rule = client.post('/api/ids-rules', json=rule_payload()).get_json()

    client.post(f"/security/rules/{rule['id']}/toggle", data={'enabled': 'false'})
    assert client.get(f"/api/ids-rules/{rule['id']}").get_json()['enabled'] is False

    html = _html(client.get(f"/security?edit={rule['id']}"))
    assert 'id="edit-rule"' in html
    assert 'value="TCP.*SYN.*multiple_ports"' in html


def test_create_rule_form(client):
    form = {'name': 'DNS Tunnel', 'description': 'Long TXT queries', 'pattern': 'TXT.{200,}',
            'severity': 'high', 'enabled': 'on'}
    html = _html(client.post('/security/rules', data=form, follow_redirects=True))
    assert 'Rule created' in html
    assert 'DNS Tunnel' in html


def test_password_vault_and_entries(client):
    html = _html(client.get('/passwords'))
    assert 'No vaults yet' in html

    client.post('/passwords/vaults', data={'name': 'Network', 'description': ''})
    vault = client.get('/api/password-vaults').get_json()[0]
    assert vault['description'] is None

    client.post(f"/passwords/entries?vault={vault['id']}", data={
        'vaultId': str(vault['id']),
        'title': 'Router Admin',
        'username': 'admin',
        'encryptedPassword': 'hunter2',
        'email': '',
        'website': '',
    })
    entry = client.get(f"/api/password-entries?vaultId={vault['id']}").get_json()[0]

    html = _html(client.get(f"/passwords?vault={vault['id']}"))
    assert 'Router Admin' in html
    assert 'hunter2' not in html

    html = _html(client.get(f"/passwords?vault={vault['id']}&show={entry['id']}"))
    assert 'hunter2' in html


def test_favorite_toggle_and_entry_edit_keeps_password(client):
    vault = client.post('/api/password-vaults', json={'name': 'Network'}).get_json()
    entry = client.post('/api/password-entries', json={
        'vaultId': vault['id'], 'title': 'Switch', 'encryptedPassword': 'p4ss'
    }).get_json()

    client.post(f"/passwords/entries/{entry['id']}/favorite", data={'isFavorite': 'true'})
    assert client.get(f"/api/password-entries/{entry['id']}").get_json()['isFavorite'] is True

    client.post(f"/passwords/entries/{entry['id']}/edit", data={
        'title': 'Switch Mgmt', 'encryptedPassword': '', 'isFavorite': 'on'
    })
    updated = client.get(f"/api/password-entries/{entry['id']}").get_json()
    assert updated['title'] == 'Switch Mgmt'
    assert updated['encryptedPassword'] == 'p4ss'


def test_delete_vault_drops_selection(client):
    vault = client.post('/api/password-vaults', json={'name': 'Network'}).get_json()

    resp = client.post(f"/passwords/vaults/{vault['id']}/delete?vault={vault['id']}")
    assert resp.headers['Location'].endswith('/passwords')
    assert client.get('/api/password-vaults').get_json() == []


@pytest.fixture(params=['memory', 'database'])
def polling_app(request):
    app = create_app('testing', overrides={
        'STORAGE_BACKEND': request.param,
        'DASHBOARD_BLOCKING_READS': False,
        'DASHBOARD_POLLING': True,
        'POLL_FAST': 60,
        'POLL_LIST': 90,
        'POLL_SLOW': 120,
    })
    yield app

    app.extensions[CLIENT_EXTENSION].close()
    with app.app_context():
        db.drop_all()


def test_page_after_form_post_shows_the_change(polling_app):
    client = polling_app.test_client()
    client.get('/devices')

    html = _html(client.post('/devices', data=DEVICE_FORM, follow_redirects=True))
    assert 'Device added' in html
    assert 'Edge Switch' in html


def test_dashboard_polls_device_status_slowly(polling_app):
    polling_app.test_client().get('/')

    cache = polling_app.extensions[CLIENT_EXTENSION].cache
    assert cache.entries[query_key('/api/devices')].poller.interval == 120
    assert cache.entries[query_key('/api/system-metrics/latest')].poller.interval == 60
