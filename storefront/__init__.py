"""Flask application factory."""

import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import config
from .errors import StorefrontError
from .extensions import bcrypt, db, init_db, login_manager, mail
from .gateway import init_gateway
from .utils.logging import configure_logging


def create_app(config_name=None, overrides=None):
    """Create and configure the Flask application."""
    if config_name is None:
        config_name = os.environ.get('FLASK_CONFIG', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    if overrides:
        app.config.update(overrides)

    configure_logging(app)

    # Initialize extensions
    init_db(app)
    login_manager.init_app(app)
    bcrypt.init_app(app)
    mail.init_app(app)
    init_gateway(app)

    # Register blueprints
    from .routes import register_blueprints
    register_blueprints(app)

    from .seed import seed_catalog_command
    app.cli.add_command(seed_catalog_command)

    # User loader for Flask-Login
    from .models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    register_error_handlers(app)
    return app


def register_error_handlers(app):
    @app.errorhandler(StorefrontError)
    def storefront_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'error': error.description or error.name}), error.code

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'error': 'Internal Server Error'}), 500
