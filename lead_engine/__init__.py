"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints and the JSON
error handlers for the engine error taxonomy.
"""
import importlib
import logging

from flask import Flask, jsonify

logger = logging.getLogger('lead_engine')


def _register_error_handlers(app):
    from lead_engine.errors import EngineError, NotFoundError, ValidationFailure

    @app.errorhandler(EngineError)
    def handle_engine_error(e):
        body = {'error': str(e), 'type': type(e).__name__}
        if isinstance(e, ValidationFailure) and e.errors:
            body['details'] = e.errors
        if not isinstance(e, NotFoundError):
            logger.warning("Request failed with %s: %s", type(e).__name__, e)
        return jsonify(body), e.http_status


def create_app():
    """Create and configure the Flask application."""
    from lead_engine.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    # Register blueprints
    from lead_engine.routes.dashboard import bp as dashboard_bp
    from lead_engine.routes.routing import bp as routing_bp
    from lead_engine.routes.leads import bp as leads_bp
    from lead_engine.routes.suggestions import bp as suggestions_bp

    app.register_blueprint(dashboard_bp)
    app.register_blueprint(routing_bp)
    app.register_blueprint(leads_bp)
    app.register_blueprint(suggestions_bp)

    _register_error_handlers(app)

    # Initialize circuit breakers for external services
    from lead_engine.extensions import redis_client
    from lead_engine.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    # Import models so Base.metadata knows about them.
    # Schema is managed by Alembic, no create_all() here.
    for name in ('lead', 'contact', 'client', 'thread', 'meeting', 'suggestion'):
        importlib.import_module(f'lead_engine.models.{name}')

    return app
