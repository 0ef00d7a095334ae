from datetime import timedelta
from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _error_payload(status: int, title: str, detail: str):
    return {
        'error': {
            'status': status,
            'title': title,
            'detail': detail,
        }
    }


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', '8')))
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    app.config['STAGE_INTERVAL_BUDGET_DAYS'] = int(os.getenv('STAGE_INTERVAL_BUDGET_DAYS', '60'))

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    app.logger.setLevel(getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO))

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

    from .routes.iam import iam_bp
    from .routes.vendors import vendors_bp
    from .routes.materials import materials_bp
    from .routes.vouchers import vouchers_bp
    from .routes.stages import stages_bp
    from .routes.rooms import rooms_bp
    from .routes.reports import rpt_bp
    app.register_blueprint(iam_bp, url_prefix='/iam')
    app.register_blueprint(vendors_bp, url_prefix='/ledger')
    app.register_blueprint(materials_bp, url_prefix='/ledger')
    app.register_blueprint(vouchers_bp, url_prefix='/ledger')
    app.register_blueprint(stages_bp, url_prefix='/grow')
    app.register_blueprint(rooms_bp, url_prefix='/grow')
    app.register_blueprint(rpt_bp, url_prefix='/reports')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    from .errors import DomainError

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        SessionLocal.rollback()
        if isinstance(e, DomainError):
            app.logger.info('%s: %s', e.title, e.detail)
            return e.to_payload(), e.status_code
        if isinstance(e, HTTPException):
            return _error_payload(e.code, e.name, e.description), e.code
        if isinstance(e, IntegrityError):
            app.logger.warning('Integrity error: %s', e.orig)
            return _error_payload(400, 'Validation Failed', 'Duplicate or conflicting value'), 400
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return _error_payload(500, 'Internal Server Error', 'Unexpected error'), 500

    @app.teardown_appcontext
    def remove_session(exc=None):
        SessionLocal.remove()

    # OpenAPI spec route (minimal)
    from .openapi import build_openapi_spec

    @app.route('/openapi.json')
    def openapi_spec():
        return build_openapi_spec()

    @app.route('/docs')
    def docs_index():
        # Lightweight HTML referencing Redoc CDN (no local install) for quick browsing
        return (
            "<!DOCTYPE html><html><head><title>API Docs</title>"
            "<link rel=\"stylesheet\" href=\"https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.css\" />"
            "</head><body><redoc spec-url='/openapi.json'></redoc>"
            "<script src='https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.js'></script>"
            "</body></html>"
        )

    return app


def get_db():
    return SessionLocal()
