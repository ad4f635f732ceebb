from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///mdm.db')
    # Side channels; empty URL means log-only delivery
    app.config['REALTIME_LOG_URL'] = os.getenv('REALTIME_LOG_URL', '')
    app.config['REALTIME_LOG_SERVICE_NAME'] = os.getenv('REALTIME_LOG_SERVICE_NAME', 'Product MDM API')
    app.config['MESSAGE_WEBHOOK_URL'] = os.getenv('MESSAGE_WEBHOOK_URL', '')
    app.config['SIDE_EFFECT_TIMEOUT_SECONDS'] = float(os.getenv('SIDE_EFFECT_TIMEOUT_SECONDS', '5'))
    # Trade.gov consolidated screening list; the demo key screens against the static extract
    app.config['COMPLIANCE_API_KEY'] = os.getenv('COMPLIANCE_API_KEY', 'demo-key')
    app.config['COMPLIANCE_API_URL'] = os.getenv('COMPLIANCE_API_URL', '')
    app.config['COMPLIANCE_TIMEOUT_SECONDS'] = float(os.getenv('COMPLIANCE_TIMEOUT_SECONDS', '30'))

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    # Side-effect collaborators; tests swap these through app.extensions
    from .services.cache import ProductCacheService
    from .services.messaging import ProductMessageService
    from .services.realtime import RealTimeLogService
    from .services.compliance import ComplianceScreeningService
    timeout = app.config['SIDE_EFFECT_TIMEOUT_SECONDS']
    app.extensions['mdm.product_cache'] = ProductCacheService()
    app.extensions['mdm.messages'] = ProductMessageService()
    app.extensions['mdm.realtime'] = RealTimeLogService(
        app.config['REALTIME_LOG_URL'], app.config['REALTIME_LOG_SERVICE_NAME'], timeout=timeout
    )
    app.extensions['mdm.compliance'] = ComplianceScreeningService(
        api_key=app.config['COMPLIANCE_API_KEY'], api_url=app.config['COMPLIANCE_API_URL'],
        timeout=app.config['COMPLIANCE_TIMEOUT_SECONDS'],
    )

    from .routes.iam import iam_bp
    from .routes.products import products_bp
    from .routes.catalogs import catalogs_bp, channels_bp
    from .routes.catalog_products import catalog_products_bp
    from .routes.data_dictionary import dictionary_bp
    from .routes.tree import tree_bp
    from .routes.compliance import compliance_bp
    from .routes.jobs import jobs_bp
    from .routes.outbox import outbox_bp
    app.register_blueprint(iam_bp, url_prefix='/iam')
    app.register_blueprint(products_bp, url_prefix='/api/products')
    app.register_blueprint(catalogs_bp, url_prefix='/api/catalogs')
    app.register_blueprint(channels_bp, url_prefix='/api/channels')
    app.register_blueprint(catalog_products_bp, url_prefix='/api/catalogproduct')
    app.register_blueprint(dictionary_bp, url_prefix='/api/data-dictionary')
    app.register_blueprint(tree_bp, url_prefix='/api/tree')
    app.register_blueprint(compliance_bp, url_prefix='/api/compliance')
    app.register_blueprint(jobs_bp, url_prefix='/api/catalogmanagement')
    app.register_blueprint(outbox_bp, url_prefix='/api/outbox')

    @app.teardown_appcontext
    def remove_session(exc=None):
        # one session per request; identity map does not outlive it
        SessionLocal.remove()

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            SessionLocal.rollback()
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            return payload, e.code
        # Unhandled exception; drop the half-applied unit of work
        app.logger.exception('Unhandled exception')
        SessionLocal.rollback()
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    from .openapi import build_openapi_spec

    @app.route('/openapi.json')
    def openapi_spec():
        return build_openapi_spec()

    @app.route('/docs')
    def docs_index():
        # Redoc from CDN, no local install
        return (
            "<!DOCTYPE html><html><head><title>MDM API Docs</title>"
            "<link rel=\"stylesheet\" href=\"https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.css\" />"
            "</head><body><redoc spec-url='/openapi.json'></redoc>"
            "<script src='https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.js'></script>"
            "</body></html>"
        )

    return app


def get_db():
    return SessionLocal()


def get_service(name: str):
    """Return a side-effect collaborator registered on the current app."""
    from flask import current_app
    return current_app.extensions[f'mdm.{name}']
