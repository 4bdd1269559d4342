"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints.
"""
from flask import Flask, jsonify


def create_app():
    """Create and configure the Flask application."""
    from app.logging_config import configure_logging
    from app.config import SECRET_KEY

    app = Flask(__name__)

    configure_logging(app)

    app.secret_key = SECRET_KEY
    app.json.sort_keys = False

    @app.errorhandler(404)
    def not_found(_e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return jsonify({'error': 'Method not allowed'}), 405

    # Register blueprints
    from app.routes.health import bp as health_bp
    from app.routes.diagnostic import bp as diagnostic_bp
    from app.routes.admin import bp as admin_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(diagnostic_bp)
    app.register_blueprint(admin_bp)

    # Initialize circuit breakers for external API services
    from app.extensions import redis_client
    from app.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    from app.database import init_db
    init_db()

    return app
