from models import db, User
import os
import logging
import click
from flask import Flask, jsonify, request
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException
from extensions import limiter
from dotenv import load_dotenv
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration
from prometheus_client import CollectorRegistry
from prometheus_flask_exporter import PrometheusMetrics

from services.errors import ValidationError, NotFoundError, ConflictError
from services.file_utils import UploadError

load_dotenv()

# Initialize Sentry for error tracking (production only)
sentry_dsn = os.environ.get('SENTRY_DSN')
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE', '0.2')),
        environment=os.environ.get('FLASK_ENV', 'production'),
    )

DEFAULT_DATABASE_URL = 'sqlite:///housing.db'
DEFAULT_MAX_CONTENT_LENGTH = 100 * 1024 * 1024


def _database_url():
    database_url = os.environ.get('DATABASE_URL') or DEFAULT_DATABASE_URL
    # Render/Heroku hand out postgres:// but SQLAlchemy 1.4+ requires postgresql://
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)
    return database_url


def create_app(test_config=None):
    app = Flask(__name__)

    # --- Configuration ---
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY')
    app.config['SQLALCHEMY_DATABASE_URI'] = _database_url()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['MAX_CONTENT_LENGTH'] = int(os.environ.get('MAX_CONTENT_LENGTH', DEFAULT_MAX_CONTENT_LENGTH))
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')

    # Session security settings
    app.config['SESSION_COOKIE_SECURE'] = os.environ.get('FLASK_ENV') == 'production'
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['PERMANENT_SESSION_LIFETIME'] = 60 * 60 * 24 * 7

    # WTF-CSRF Protection; the SPA sends the token in X-CSRFToken
    app.config['WTF_CSRF_ENABLED'] = True
    app.config['WTF_CSRF_TIME_LIMIT'] = None

    # Social login and storage credentials
    for key in (
        'GOOGLE_CLIENT_ID', 'GOOGLE_CLIENT_SECRET',
        'NAVER_CLIENT_ID', 'NAVER_CLIENT_SECRET',
        'KAKAO_CLIENT_ID', 'KAKAO_CLIENT_SECRET',
        'OAUTH_REDIRECT_BASE',
        'AWS_ACCESS_KEY_ID', 'AWS_SECRET_ACCESS_KEY', 'AWS_BUCKET_NAME', 'AWS_REGION',
        'SUPABASE_URL', 'SUPABASE_SERVICE_ROLE_KEY', 'SUPABASE_BUCKET',
        'UPLOAD_FOLDER',
    ):
        app.config[key] = os.environ.get(key)

    # Allow tests to override config before extensions are initialized
    if test_config:
        app.config.update(test_config)

    # SECRET_KEY is required - no fallback for production
    if not app.config.get('SECRET_KEY'):
        raise ValueError("SECRET_KEY environment variable must be set")

    app.logger.setLevel(getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO))

    # Initialize Prometheus metrics; tests build many apps, each gets its own registry
    registry = CollectorRegistry() if app.config.get('TESTING') else None
    metrics = PrometheusMetrics(app, registry=registry)
    metrics.info('app_info', 'Housing CMS backend', version='1.0.0')

    # --- Initialization ---
    db.init_app(app)

    # CSRF Protection
    CSRFProtect(app)

    # Flask-Login setup
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    limiter.init_app(app)

    # Security headers
    @app.after_request
    def set_security_headers(response):
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        # HSTS for HTTPS (only in production)
        if os.environ.get('FLASK_ENV') == 'production':
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    _register_error_handlers(app)

    # --- Blueprints (Routes) ---
    from blueprints import register_blueprints
    register_blueprints(app)

    @app.route('/health')
    def health_check():
        """Report app and database status; 503 when the database is unreachable."""
        health_status = {'status': 'healthy', 'service': 'housing-cms', 'checks': {}}
        try:
            db.session.execute(db.text('SELECT 1'))
            health_status['checks']['database'] = {'status': 'healthy'}
        except Exception as e:
            db.session.rollback()
            app.logger.exception('Health check database query failed')
            health_status['status'] = 'unhealthy'
            health_status['checks']['database'] = {'status': 'unhealthy', 'error': str(e)}
        health_status['checks']['sentry'] = {'status': 'enabled' if sentry_dsn else 'disabled'}
        http_status = 200 if health_status['status'] == 'healthy' else 503
        return jsonify(health_status), http_status

    # --- Database Setup/Migration ---
    Migrate(app, db)
    _register_cli(app)

    return app, limiter


def _register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({'error': e.message, 'details': e.details}), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return jsonify({'error': e.message}), 404

    @app.errorhandler(ConflictError)
    def handle_conflict(e):
        body = {'error': e.message}
        if e.field:
            body['details'] = {e.field: e.message}
        return jsonify(body), 409

    @app.errorhandler(UploadError)
    def handle_upload_error(e):
        return jsonify({'error': e.message}), e.status

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        return jsonify({'error': 'CSRF token missing or invalid'}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        app.logger.exception('Unhandled error on %s %s', request.method, request.path)
        sentry_sdk.capture_exception(e)
        return jsonify({'error': 'Internal server error'}), 500


def _register_cli(app):
    @app.cli.command('init-db')
    def init_db():
        """Create all tables (fresh installs; use `flask db upgrade` otherwise)."""
        db.create_all()
        click.echo('Database tables created.')

    @app.cli.command('create-admin')
    @click.argument('email')
    @click.argument('password')
    def create_admin(email, password):
        """Create an admin account or promote an existing one."""
        from services import user_service
        try:
            user = user_service.create_admin(email, password)
        except ValidationError as e:
            raise click.ClickException(f"{e.message}: {e.details}")
        click.echo(f'Admin ready: {user.email}')


if __name__ == '__main__':
    app, limiter = create_app()
    app.run(debug=True)
