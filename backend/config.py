import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'devkey')
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', 'devjwt')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///roomshare.sqlite')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    CURRENCY = 'VND'
    INVOICE_DUE_DAYS = int(os.environ.get('INVOICE_DUE_DAYS', 7))
    # day of month monthly rent invoices fall due
    BILLING_DAY = int(os.environ.get('BILLING_DAY', 5))

    PAYMENT_CALLBACK_SECRET = os.environ.get('PAYMENT_CALLBACK_SECRET', 'devcallback')

    DEFAULT_PER_PAGE = 20
    MAX_PER_PAGE = 100


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    PAYMENT_CALLBACK_SECRET = 'test-callback'
    LOG_LEVEL = 'DEBUG'
