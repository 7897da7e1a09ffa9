"""
Flask application factory.

Creates and configures the Flask app, registers the enrichment API.
Authentication happens upstream; the caller's identity arrives in X-User-Id.
"""
from flask import Flask, jsonify


def create_app():
    """Create and configure the Flask application."""
    from app.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    @app.route('/health')
    def health():
        """Liveness + dependency reachability."""
        from sqlalchemy import text
        from app import database
        from app.extensions import redis_client

        checks = {}
        try:
            redis_client.ping()
            checks['redis'] = 'ok'
        except Exception as e:
            checks['redis'] = f'error: {e}'

        try:
            session = database.get_session()
            try:
                session.execute(text('SELECT 1'))
            finally:
                session.close()
            checks['database'] = 'ok'
        except Exception as e:
            checks['database'] = f'error: {e}'

        healthy = all(v == 'ok' for v in checks.values())
        return jsonify({'ok': healthy, 'checks': checks}), 200 if healthy else 503

    # Register blueprints
    from app.routes.enrichment import bp as enrichment_bp

    app.register_blueprint(enrichment_bp)

    # Import models so Base.metadata knows about them (required for SQLAlchemy).
    # Schema is managed by Alembic — no init_db() call.
    import importlib
    importlib.import_module('app.models.user')
    importlib.import_module('app.models.company')
    importlib.import_module('app.models.contact')

    return app
