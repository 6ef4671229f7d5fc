import logging
import os

import click
from dotenv import load_dotenv
from flask import Flask, request
from flasgger import Swagger
from werkzeug.exceptions import HTTPException

from usanumbers.errors import MarketplaceError, StoreUnavailableError, UnexpectedError
from usanumbers.extensions import db, jwt
from usanumbers.logging_config import setup_logging
from usanumbers.responses import fail, ok
from usanumbers.store import STORE_UNAVAILABLE_ERRORS, ping
import usanumbers.models  # noqa: F401  register models

load_dotenv()

logger = logging.getLogger(__name__)


def _database_uri():
    if os.environ.get('DATABASE_URL'):
        return os.environ['DATABASE_URL']
    db_user = os.environ.get('DB_USER', 'numbers_svc_user')
    db_pass = os.environ.get('DB_PASS', 'password')
    db_host = os.environ.get('DB_HOST', 'numbers-db')
    db_name = os.environ.get('DB_NAME', 'numbers_db')
    return f"postgresql://{db_user}:{db_pass}@{db_host}/{db_name}"


def create_app(test_config=None):
    app = Flask(__name__)

    # Configuration
    app.config['SQLALCHEMY_DATABASE_URI'] = _database_uri()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {'pool_pre_ping': True}
    app.config['JWT_SECRET_KEY'] = os.environ.get('JWT_SECRET', 'dev-secret-change-me')
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')
    app.config['DEFAULT_NUMBER_PRICE'] = os.environ.get('DEFAULT_NUMBER_PRICE', '0.30')
    app.config['AVAILABLE_NUMBERS_LIMIT'] = int(os.environ.get('AVAILABLE_NUMBERS_LIMIT', 50))
    app.config['ADMIN_USERS_LIMIT'] = int(os.environ.get('ADMIN_USERS_LIMIT', 100))
    app.config['ADMIN_NUMBERS_LIMIT'] = int(os.environ.get('ADMIN_NUMBERS_LIMIT', 50))
    app.config['RECENT_PURCHASES_LIMIT'] = int(os.environ.get('RECENT_PURCHASES_LIMIT', 5))
    if test_config:
        app.config.update(test_config)

    setup_logging(app.config['LOG_LEVEL'])

    # Initialize Extensions
    db.init_app(app)
    jwt.init_app(app)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return fail(reason, 401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return fail(reason, 401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return fail('Token has expired', 401)

    Swagger(app)

    # Register Blueprints
    from usanumbers.routes.auth import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    from usanumbers.routes.user import user_bp
    app.register_blueprint(user_bp, url_prefix='/api/user')

    from usanumbers.routes.numbers import numbers_bp
    app.register_blueprint(numbers_bp, url_prefix='/api/numbers')

    from usanumbers.routes.admin import admin_bp
    app.register_blueprint(admin_bp, url_prefix='/api/admin')

    register_error_handlers(app)

    @app.route('/api/health')
    def health():
        """
        Liveness and data store connectivity
        ---
        tags:
          - Health
        responses:
          200:
            description: Service and store are healthy
          503:
            description: Data store unreachable
        """
        connected, error = ping()
        data = {'service': 'usanumbers', 'status': 'ok' if connected else 'degraded',
                'store': 'connected' if connected else 'unavailable'}
        if not connected:
            data['error'] = error
            return fail('Data store unavailable', 503, data)
        return ok(data)

    @app.route('/')
    def index():
        return ok({
            'message': 'USANumbers API is running',
            'version': '1.0.0',
            'endpoints': sorted(
                rule.rule for rule in app.url_map.iter_rules() if rule.rule.startswith('/api/')
            ),
        })

    @app.cli.command('init-db')
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo('Initialized the database.')

    return app


def register_error_handlers(app):

    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(e):
        if e.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, e.message)
        return fail(e.message, e.status_code, e.data)

    @app.errorhandler(404)
    def handle_not_found(e):
        return fail(f"Cannot {request.method} {request.path}", 404)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return fail(e.description, e.code)

    for error in STORE_UNAVAILABLE_ERRORS:
        @app.errorhandler(error)
        def handle_store_error(e):
            db.session.rollback()
            logger.error("Store unavailable during %s %s: %s", request.method, request.path, e)
            return fail(StoreUnavailableError.message, StoreUnavailableError.status_code)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail(UnexpectedError.message, UnexpectedError.status_code)


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=5000)
