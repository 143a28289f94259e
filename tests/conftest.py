import pytest

from api import STORAGE_EXTENSION
from app import create_app
from models import db
from views import CLIENT_EXTENSION


@pytest.fixture(params=['memory', 'database'])
def app(request):
    app = create_app('testing', overrides={'STORAGE_BACKEND': request.param})
    yield app

    app.extensions[CLIENT_EXTENSION].close()
    with app.app_context():
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage(app):
    with app.app_context():
        yield app.extensions[STORAGE_EXTENSION]


@pytest.fixture
def dashboard(app):
    return app.extensions[CLIENT_EXTENSION]


def device_payload(**overrides):
    payload = {
        'name': 'Core Router R1',
        'type': 'router',
        'ipAddress': '10.0.0.1',
        'status': 'online',
        'bandwidth': 450,
        'maxBandwidth': 1000,
    }
    payload.update(overrides)
    return payload


def rule_payload(**overrides):
    payload = {
        'name': 'Port Scan Detection',
        'description': 'Detects suspicious port scanning activity',
        'pattern': 'TCP.*SYN.*multiple_ports',
        'severity': 'medium',
    }
    payload.update(overrides)
    return payload


def event_payload(**overrides):
    payload = {
        'eventType': 'port_scan',
        'severity': 'high',
        'sourceIp': '178.62.199.34',
        'targetIp': '10.0.0.1',
        'description': 'Port scan activity from external IP detected',
    }
    payload.update(overrides)
    return payload
