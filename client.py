"""Polling query cache the dashboard views read from.

Every query is keyed by ``(path, params)``. The cache keeps the latest
successful response per key, re-fetches it on a fixed interval from a daemon
thread, and is invalidated by successful mutations so the next read goes back
to the API.
"""
import logging
from collections import namedtuple
from threading import Condition, Event, Lock, Thread

import requests
from werkzeug.test import Client

from models import utcnow

logger = logging.getLogger(__name__)

TransportResponse = namedtuple('TransportResponse', ['status_code', 'body'])
QueryResult = namedtuple('QueryResult', ['data', 'error', 'is_loading', 'updated_at'])


class ApiError(Exception):
    def __init__(self, status, message, errors=None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.errors = errors or []

    @classmethod
    def from_response(cls, response):
        body = response.body if isinstance(response.body, dict) else {}
        message = body.get('error') or f"Request failed with status {response.status_code}"
        return cls(response.status_code, message, body.get('errors'))

    def __str__(self):
        if not self.errors:
            return self.message
        details = ', '.join(f"{e.get('field')}: {e.get('message')}" for e in self.errors)
        return f"{self.message} ({details})"


class HTTPTransport:
    """Talks to a NetWatch API over HTTP."""

    def __init__(self, base_url, timeout=10):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

    def request(self, method, path, params=None, json=None):
        resp = self.session.request(
            method,
            f"{self.base_url}{path}",
            params=params,
            json=json,
            timeout=self.timeout
        )
        body = None
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                body = None
        return TransportResponse(resp.status_code, body)


class WSGITransport:
    """Calls the API of an application in the same process."""

    def __init__(self, app):
        self.app = app

    def request(self, method, path, params=None, json=None):
        resp = Client(self.app).open(path, method=method, query_string=params, json=json)
        return TransportResponse(resp.status_code, resp.get_json(silent=True))


def query_key(path, params=None):
    items = tuple(sorted((k, str(v)) for k, v in (params or {}).items() if v is not None))
    return (path, items)


def _matches(path, prefix):
    prefix = prefix.rstrip('/')
    return path == prefix or path.startswith(prefix + '/')


class _Entry:
    def __init__(self, key):
        self.key = key
        self.data = None
        self.error = None
        self.updated_at = None
        self.stale = True
        self.fetching = False
        # bumped by every invalidation
        self.generation = 0
        self.poller = None

    @property
    def first_load(self):
        return self.updated_at is None and self.error is None and self.generation == 0

    def snapshot(self):
        return QueryResult(
            data=self.data,
            error=self.error,
            is_loading=self.data is None and self.error is None,
            updated_at=self.updated_at
        )


class Poller:
    def __init__(self, cache, key, interval):
        self.cache = cache
        self.key = key
        self.interval = interval
        self.stop_event = Event()
        self.thread = Thread(target=self._loop, daemon=True)

    def start(self):
        self.thread.start()
        logger.debug(f"Polling {self.key[0]} every {self.interval}s")

    def _loop(self):
        while not self.stop_event.wait(self.interval):
            self.cache.refresh(self.key)

    def stop(self):
        self.stop_event.set()


class QueryCache:
    def __init__(self, fetcher, blocking=True):
        self.fetcher = fetcher
        self.blocking = blocking
        self.entries = {}
        self.lock = Lock()
        self.fetched = Condition(self.lock)

    def _entry(self, key):
        with self.lock:
            entry = self.entries.get(key)
            if entry is None:
                entry = self.entries[key] = _Entry(key)
            return entry

    def read(self, key):
        """Latest snapshot for ``key``, fetching first if it is missing or stale.

        Only a key that has never been fetched or invalidated is loaded in the
        background when the cache is non-blocking; the caller then sees the
        loading state. A stale key is always refetched before returning.
        """
        entry = self._entry(key)
        with self.lock:
            stale = entry.stale
            background = not self.blocking and entry.first_load

        if stale:
            if background:
                if not entry.fetching:
                    Thread(target=self.refresh, args=(key,), daemon=True).start()
            else:
                self.refresh(key, wait=True)
        return entry.snapshot()

    def refresh(self, key, wait=False):
        """Fetch ``key`` once.

        With ``wait`` set, a fetch already in flight is awaited instead of
        skipped, and the key is fetched again if it is still stale afterwards.
        """
        entry = self._entry(key)
        with self.lock:
            # one in-flight fetch per key
            if entry.fetching:
                if not wait:
                    return
                while entry.fetching:
                    self.fetched.wait()
                if not entry.stale:
                    return
            entry.fetching = True
            generation = entry.generation

        path, params = key
        try:
            data = self.fetcher(path, dict(params))
        except (ApiError, requests.RequestException) as e:
            logger.warning(f"Fetching {path} failed: {e}")
            with self.lock:
                entry.error = e
                self._finish(entry, generation)
            return

        with self.lock:
            entry.data = data
            entry.error = None
            entry.updated_at = utcnow()
            self._finish(entry, generation)

    def _finish(self, entry, generation):
        # an invalidation during the fetch keeps the entry stale
        if entry.generation == generation:
            entry.stale = False
        entry.fetching = False
        self.fetched.notify_all()

    def watch(self, key, interval):
        entry = self._entry(key)
        with self.lock:
            if entry.poller is None:
                entry.poller = Poller(self, key, interval)
                entry.poller.start()
            elif interval < entry.poller.interval:
                entry.poller.interval = interval

    def invalidate(self, prefix):
        with self.lock:
            stale = [e for key, e in self.entries.items() if _matches(key[0], prefix)]
            for entry in stale:
                entry.stale = True
                entry.generation += 1
        return len(stale)

    def stop(self):
        with self.lock:
            pollers = [e.poller for e in self.entries.values() if e.poller]
            for entry in self.entries.values():
                entry.poller = None
        for poller in pollers:
            poller.stop()


class DashboardClient:
    def __init__(self, transport, blocking=True, polling=True, fast=5, list_interval=10, slow=30):
        self.transport = transport
        self.cache = QueryCache(self._fetch, blocking=blocking)
        self.polling = polling
        self.fast = fast
        self.list_interval = list_interval
        self.slow = slow

    def _fetch(self, path, params):
        resp = self.transport.request('GET', path, params=params)
        if not 200 <= resp.status_code < 300:
            raise ApiError.from_response(resp)
        return resp.body

    def query(self, path, params=None, interval=None):
        key = query_key(path, params)
        if self.polling and interval:
            self.cache.watch(key, interval)
        return self.cache.read(key)

    def mutate(self, method, path, json=None, invalidates=()):
        resp = self.transport.request(method, path, json=json)
        if not 200 <= resp.status_code < 300:
            raise ApiError.from_response(resp)

        for prefix in invalidates:
            self.cache.invalidate(prefix)
        return resp.body

    def close(self):
        self.cache.stop()

    # Queries

    def devices(self, interval=None):
        return self.query('/api/devices', interval=interval or self.list_interval)

    def latest_system_metric(self):
        return self.query('/api/system-metrics/latest', interval=self.fast)

    def system_metrics_history(self, limit=24):
        return self.query('/api/system-metrics/history', {'limit': limit}, interval=self.list_interval)

    def bandwidth_metrics(self, limit=24, device_id=None):
        return self.query('/api/bandwidth-metrics', {'limit': limit, 'deviceId': device_id},
                          interval=self.list_interval)

    def security_events(self, status=None):
        return self.query('/api/security-events', {'status': status}, interval=self.slow)

    def ids_rules(self):
        return self.query('/api/ids-rules', interval=self.slow)

    def password_vaults(self):
        return self.query('/api/password-vaults', interval=self.slow)

    def password_entries(self, vault_id):
        return self.query('/api/password-entries', {'vaultId': vault_id}, interval=self.slow)

    # Mutations

    def create_device(self, payload):
        return self.mutate('POST', '/api/devices', payload, invalidates=('/api/devices',))

    def update_device(self, device_id, payload):
        return self.mutate('PUT', f'/api/devices/{device_id}', payload, invalidates=('/api/devices',))

    def delete_device(self, device_id):
        return self.mutate('DELETE', f'/api/devices/{device_id}', invalidates=('/api/devices',))

    def generate_mock_data(self):
        return self.mutate('POST', '/api/generate-mock-data',
                           invalidates=('/api/bandwidth-metrics', '/api/system-metrics'))

    def update_security_event(self, event_id, payload):
        return self.mutate('PUT', f'/api/security-events/{event_id}', payload,
                           invalidates=('/api/security-events',))

    def delete_security_event(self, event_id):
        return self.mutate('DELETE', f'/api/security-events/{event_id}', invalidates=('/api/security-events',))

    def create_ids_rule(self, payload):
        return self.mutate('POST', '/api/ids-rules', payload, invalidates=('/api/ids-rules',))

    def update_ids_rule(self, rule_id, payload):
        return self.mutate('PUT', f'/api/ids-rules/{rule_id}', payload, invalidates=('/api/ids-rules',))

    def delete_ids_rule(self, rule_id):
        return self.mutate('DELETE', f'/api/ids-rules/{rule_id}', invalidates=('/api/ids-rules',))

    def create_password_vault(self, payload):
        return self.mutate('POST', '/api/password-vaults', payload, invalidates=('/api/password-vaults',))

    def delete_password_vault(self, vault_id):
        return self.mutate('DELETE', f'/api/password-vaults/{vault_id}',
                           invalidates=('/api/password-vaults', '/api/password-entries'))

    def create_password_entry(self, payload):
        return self.mutate('POST', '/api/password-entries', payload, invalidates=('/api/password-entries',))

    def update_password_entry(self, entry_id, payload):
        return self.mutate('PUT', f'/api/password-entries/{entry_id}', payload,
                           invalidates=('/api/password-entries',))

    def delete_password_entry(self, entry_id):
        return self.mutate('DELETE', f'/api/password-entries/{entry_id}', invalidates=('/api/password-entries',))
