#!/usr/bin/env python3
import sys
import logging

from api import STORAGE_EXTENSION
from app import create_app
from views import CLIENT_EXTENSION

logger = logging.getLogger(__name__)


def startup_summary(app):
    """Lines logged before serving: URLs, storage backend, vault and dashboard mode."""
    port = app.config['API_PORT']
    storage = app.extensions[STORAGE_EXTENSION]
    client = app.extensions[CLIENT_EXTENSION]

    lines = [
        f"NetWatch Dashboard: http://localhost:{port}",
        f"API Base: http://localhost:{port}/api",
        f"Storage: {storage.name}",
    ]
    if storage.name == 'database':
        lines.append(f"Database: {app.config['SQLALCHEMY_DATABASE_URI']}")
        lines.append(f"Vault encryption: {'on' if storage.cipher else 'off'}")

    source = app.config.get('DASHBOARD_API_URL') or 'in-process'
    polling = 'polling' if client.polling else 'no polling'
    lines.append(f"Dashboard API: {source} ({polling})")
    return lines


if __name__ == '__main__':
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        logger.info("Starting NetWatch...")
        app = create_app()

        logger.info("=" * 60)
        for line in startup_summary(app):
            logger.info(line)
        logger.info("=" * 60)

        app.run(
            debug=app.config['DEBUG'],
            host=app.config['API_HOST'],
            port=app.config['API_PORT'],
            use_reloader=False
        )

    except KeyboardInterrupt:
        logger.info("Shutting down NetWatch...")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
