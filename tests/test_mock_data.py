import random
from datetime import datetime, timedelta

from mock_data import HOURS, generate_mock_data
from schemas import DeviceCreate


def test_one_row_per_hour_per_reporting_device(storage):
    for i, status in enumerate(['online', 'warning', 'offline']):
        storage.create_device(DeviceCreate(name=f'd{i}', type='switch', ip_address=f'10.0.1.{i}', status=status))

    now = datetime(2025, 3, 1, 12, 0)
    counts = generate_mock_data(storage, now=now, rng=random.Random(7))
    assert counts == {'bandwidthMetrics': 2 * HOURS, 'systemMetrics': HOURS}

    history = storage.get_system_metrics_history(limit=100)
    assert history[0].timestamp == now
    assert history[-1].timestamp == now - timedelta(hours=HOURS - 1)

    metrics = storage.get_bandwidth_metrics(limit=1000)
    assert all(0 <= m.incoming <= 3 and 0 <= m.outgoing <= 2.5 for m in metrics)
    assert all(99 <= m.uptime <= 100 for m in history)


def test_no_devices_still_writes_system_metrics(storage):
    counts = generate_mock_data(storage)
    assert counts == {'bandwidthMetrics': 0, 'systemMetrics': HOURS}
