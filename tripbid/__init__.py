from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from sqlalchemy import event
import logging
import os

db = SQLAlchemy()

logger = logging.getLogger(__name__)


def _configure_logging(app):
    """Root logging setup; every record carries the current request id."""
    from tripbid.middleware.request_id import RequestIdFilter

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s'
    ))
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(app.config.get('LOG_LEVEL', 'INFO'))


def _init_sentry(app):
    dsn = app.config.get('SENTRY_DSN')
    if not dsn:
        if not app.debug and not app.testing:
            logger.warning("SENTRY_DSN is not set -- error monitoring is disabled.")
        return

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    sentry_sdk.init(
        dsn=dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=0.1,
    )


def _configure_sqlite(app):
    """
    SQLite needs foreign keys switched on per connection, and pysqlite's own
    BEGIN handling has to be replaced for SAVEPOINT to behave.
    """
    if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        return

    with app.app_context():
        engine = db.engine

    @event.listens_for(engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN')


def _register_error_handlers(app):
    from tripbid.errors import TripBidError

    @app.errorhandler(TripBidError)
    def handle_tripbid_error(e):
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({'error': 'Resource not found', 'code': 'not_found'}), 404

    @app.errorhandler(429)
    def handle_ratelimit(e):
        retry_after = e.get_headers().get('Retry-After') if hasattr(e, 'get_headers') else None
        return jsonify({
            'error': 'Too many requests. Please try again later.',
            'code': 'rate_limited',
            'retry_after': int(retry_after) if retry_after else 60,
        }), 429

    @app.errorhandler(500)
    def handle_internal_error(e):
        db.session.rollback()
        logger.exception("Unhandled error: %s", getattr(e, 'original_exception', e))
        return jsonify({'error': 'Internal server error', 'code': 'internal_error'}), 500


def create_app(config_name=None):
    """Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    from config import config
    app.config.from_object(config.get(config_name, config['default']))

    _configure_logging(app)
    _init_sentry(app)

    # Initialize extensions
    from tripbid.extensions import limiter
    from tripbid.events import socketio
    from tripbid.middleware.request_id import RequestIdMiddleware

    db.init_app(app)
    _configure_sqlite(app)
    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)
    limiter.init_app(app)
    origins = app.config['CORS_ORIGINS']
    socketio.init_app(
        app,
        cors_allowed_origins='*' if '*' in origins else origins,
        message_queue=app.config.get('SOCKETIO_MESSAGE_QUEUE'),
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE'),
    )
    app.wsgi_app = RequestIdMiddleware(app.wsgi_app)

    # Register models so create_all() sees every table
    from tripbid import models  # noqa: F401

    # Register blueprints
    from tripbid.routes.trips import trips_bp
    from tripbid.routes.bids import bids_bp
    from tripbid.routes.bookings import bookings_bp
    from tripbid.routes.notifications import notifications_bp
    from tripbid.routes.reviews import reviews_bp
    from tripbid.routes.profiles import profiles_bp

    api_prefix = app.config['API_PREFIX']
    app.register_blueprint(trips_bp, url_prefix=f'{api_prefix}/trips')
    app.register_blueprint(bids_bp, url_prefix=f'{api_prefix}/bids')
    app.register_blueprint(bookings_bp, url_prefix=f'{api_prefix}/bookings')
    app.register_blueprint(notifications_bp, url_prefix=f'{api_prefix}/notifications')
    app.register_blueprint(reviews_bp, url_prefix=f'{api_prefix}/reviews')
    app.register_blueprint(profiles_bp, url_prefix=api_prefix)

    _register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health():
        return {'status': 'healthy', 'service': 'tripbid-backend'}, 200

    return app
