"""Drop and recreate every table, then load the sample data again.

Usage: python reset_db.py [--empty]
"""
import sys
import logging
from app import create_app
from api import STORAGE_EXTENSION
from models import db

if __name__ == '__main__':
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    seed = '--empty' not in sys.argv[1:]
    app = create_app(overrides={'STORAGE_BACKEND': 'database', 'SEED_SAMPLE_DATA': seed, 'DASHBOARD_POLLING': False})

    with app.app_context():
        db.drop_all()
        print(f"Dropped all tables in {app.config['SQLALCHEMY_DATABASE_URI']}")

        db.create_all()
        print("Database recreated successfully")

        if seed:
            devices = app.extensions[STORAGE_EXTENSION].get_devices()
            print(f"Sample data loaded: {len(devices)} devices")
        else:
            print("Left empty, no sample data loaded")
