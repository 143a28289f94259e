import logging
import random
from datetime import timedelta

from models import utcnow
from schemas import BandwidthMetricCreate, SystemMetricCreate

logger = logging.getLogger(__name__)

HOURS = 24
REPORTING_STATUSES = ('online', 'warning')


def generate_mock_data(storage, now=None, rng=None):
    """Fabricate one row per hour for the last 24 hours.

    Every online or warning device gets a bandwidth metric per hour and one
    system metric is written per hour. Rows are inserted one at a time, so a
    failure part-way leaves the rows already written in place.
    """
    now = now or utcnow()
    rng = rng or random.Random()

    devices = [d for d in storage.get_devices() if d.status in REPORTING_STATUSES]

    bandwidth_rows = 0
    system_rows = 0
    for hour in range(HOURS):
        timestamp = now - timedelta(hours=hour)

        for device in devices:
            storage.create_bandwidth_metric(
                BandwidthMetricCreate(
                    device_id=device.id,
                    incoming=rng.random() * 3,
                    outgoing=rng.random() * 2.5,
                ),
                timestamp=timestamp,
            )
            bandwidth_rows += 1

        storage.create_system_metric(
            SystemMetricCreate(
                active_devices=120 + rng.randrange(10),
                total_bandwidth=2 + rng.random(),
                warnings=rng.randrange(5),
                uptime=99 + rng.random(),
            ),
            timestamp=timestamp,
        )
        system_rows += 1

    logger.info(f"Mock data generated: {bandwidth_rows} bandwidth metrics, {system_rows} system metrics")
    return {'bandwidthMetrics': bandwidth_rows, 'systemMetrics': system_rows}
