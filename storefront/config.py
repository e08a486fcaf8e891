import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database - SQLite for local development, PostgreSQL in production
    basedir = os.path.dirname(os.path.dirname(__file__))
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        f'sqlite:///{os.path.join(basedir, "instance", "storefront.db")}'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Checkout pricing
    TAX_RATE = Decimal(os.environ.get('TAX_RATE', '0.08'))
    SHIPPING_FLAT_FEE = Decimal(os.environ.get('SHIPPING_FLAT_FEE', '9.99'))
    FREE_SHIPPING_THRESHOLD = Decimal(os.environ.get('FREE_SHIPPING_THRESHOLD', '100'))
    MAX_CART_QUANTITY = int(os.environ.get('MAX_CART_QUANTITY', 99))

    # Payment provider
    PAYMENT_GATEWAY = os.environ.get('PAYMENT_GATEWAY', 'fake')  # fake, stripe
    PAYMENT_CURRENCY = os.environ.get('PAYMENT_CURRENCY', 'usd')
    PAYMENT_SUCCESS_URL = os.environ.get(
        'PAYMENT_SUCCESS_URL', 'http://localhost:3000/checkout/success?order={order_number}')
    PAYMENT_CANCEL_URL = os.environ.get(
        'PAYMENT_CANCEL_URL', 'http://localhost:3000/checkout/cancel?order={order_number}')
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET') or 'whsec_dev'
    WEBHOOK_TOLERANCE_SECONDS = int(os.environ.get('WEBHOOK_TOLERANCE_SECONDS', 300))

    # Mail Configuration
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'True').lower() == 'true'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER') or 'orders@storefront.local'
    SEND_ORDER_EMAILS = os.environ.get('SEND_ORDER_EMAILS', 'True').lower() == 'true'

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_JSON = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_ECHO = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    PAYMENT_GATEWAY = os.environ.get('PAYMENT_GATEWAY', 'stripe')
    LOG_JSON = True


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    PAYMENT_GATEWAY = 'fake'
    STRIPE_WEBHOOK_SECRET = 'whsec_test'
    MAIL_SUPPRESS_SEND = True
    BCRYPT_LOG_ROUNDS = 4
    LOG_LEVEL = 'WARNING'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
