"""Routes package - register all blueprints."""

from flask import Flask, jsonify


def register_blueprints(app: Flask):
    """Register all blueprints with the application."""
    from .auth import auth_bp
    from .cart import cart_bp
    from .orders import orders_bp
    from .payments import payments_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(cart_bp, url_prefix='/api/cart')
    app.register_blueprint(orders_bp, url_prefix='/api/orders')
    app.register_blueprint(payments_bp, url_prefix='/api/payments')

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})
