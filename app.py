from flask import Flask
from flask_cors import CORS
import atexit
import logging
import os

from config import config
from models import db
from api import STORAGE_EXTENSION, create_api
from client import DashboardClient, HTTPTransport, WSGITransport
from storage import create_storage
from views import CLIENT_EXTENSION, views_bp

logger = logging.getLogger(__name__)


def _create_client(app):
    api_url = app.config.get('DASHBOARD_API_URL')
    if api_url:
        transport = HTTPTransport(api_url, timeout=app.config.get('DASHBOARD_REQUEST_TIMEOUT', 10))
        logger.info(f"Dashboard reading from {api_url}")
    else:
        transport = WSGITransport(app)

    return DashboardClient(
        transport,
        blocking=app.config.get('DASHBOARD_BLOCKING_READS', False),
        polling=app.config.get('DASHBOARD_POLLING', True),
        fast=app.config.get('POLL_FAST', 5),
        list_interval=app.config.get('POLL_LIST', 10),
        slow=app.config.get('POLL_SLOW', 30)
    )


def create_app(config_name=None, storage=None, overrides=None):
    app = Flask(__name__)

    env = config_name or os.environ.get('FLASK_ENV', 'development')
    app.config.from_object(config[env])
    if overrides:
        app.config.update(overrides)

    db.init_app(app)
    CORS(app)

    with app.app_context():
        db.create_all()

    app.extensions[STORAGE_EXTENSION] = storage or create_storage(app)
    create_api(app)

    client = _create_client(app)
    app.extensions[CLIENT_EXTENSION] = client
    app.register_blueprint(views_bp)

    if client.polling:
        atexit.register(client.close)

    logger.info(f"App created ({env}, storage: {app.extensions[STORAGE_EXTENSION].name})")
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True, host=app.config['API_HOST'], port=app.config['API_PORT'])
