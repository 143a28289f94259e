import os


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///netwatch.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # 'database' or 'memory'
    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND', 'database')
    SEED_SAMPLE_DATA = True

    # urlsafe base64 of 32 random bytes; password entries are stored unencrypted without it
    VAULT_ENCRYPTION_KEY = os.environ.get('VAULT_ENCRYPTION_KEY')

    MAX_LIST_LIMIT = 1000

    # Dashboard views talk to the API in-process unless an external base URL is set
    DASHBOARD_API_URL = os.environ.get('DASHBOARD_API_URL')
    DASHBOARD_POLLING = True
    DASHBOARD_BLOCKING_READS = False
    DASHBOARD_REQUEST_TIMEOUT = 10

    POLL_FAST = 5
    POLL_LIST = 10
    POLL_SLOW = 30

    API_PORT = int(os.environ.get('API_PORT', 5000))
    API_HOST = os.environ.get('API_HOST', '0.0.0.0')


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False
    SEED_SAMPLE_DATA = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    STORAGE_BACKEND = 'memory'
    SEED_SAMPLE_DATA = False
    VAULT_ENCRYPTION_KEY = None
    DASHBOARD_API_URL = None
    DASHBOARD_POLLING = False
    DASHBOARD_BLOCKING_READS = True


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
