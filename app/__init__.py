"""
App package initialization
Builds the Flask application and wires the services
"""
import os

from flask import Flask

import config
from app import globals as app_globals
from core.attendance import AttendanceLedger
from core.enrollment import EnrollmentAggregator
from core.matching import Matcher
from core.reporting import AttendanceReporter
from database import DatabaseManager
from logging_config import setup_logging
from services.email_service import EmailService
from services.image_store import ImageStore


def _init_services(app):
    """Create the service instances from app.config and publish them in app.globals"""
    cfg = app.config

    database = DatabaseManager(
        cfg['DATABASE_PATH'],
        timeout=cfg['DB_TIMEOUT_SECONDS'],
        retries=cfg['PERSISTENCE_RETRIES'],
    )
    app.logger.info(f"[STARTUP] Database path: {os.path.abspath(database.db_path)}")

    image_store = ImageStore(cfg['IMAGES_DIR'])

    app_globals.database = database
    app_globals.image_store = image_store
    app_globals.matcher = Matcher(threshold=cfg['MATCH_THRESHOLD'], logger=app.logger)
    app_globals.enrollment = EnrollmentAggregator(
        database=database,
        image_store=image_store,
        min_frames=cfg['MIN_ENROLLMENT_FRAMES'],
        expected_length=cfg['FEATURE_VECTOR_LENGTH'] or None,
        logger=app.logger,
    )
    app_globals.ledger = AttendanceLedger(database=database, image_store=image_store, logger=app.logger)
    app_globals.reporter = AttendanceReporter(database=database)
    app_globals.email_service = EmailService(
        host=cfg['SMTP_HOST'],
        port=cfg['SMTP_PORT'],
        sender=cfg['EMAIL_FROM'],
        password=cfg['EMAIL_PASSWORD'],
        default_recipient=cfg['EMAIL_TO'],
        use_tls=cfg['SMTP_USE_TLS'],
        timeout=cfg['SMTP_TIMEOUT_SECONDS'],
        data_dir=cfg['DATA_DIR'],
    )

    app.logger.info(
        f"[STARTUP] Services ready: {database.count_students()} registered students, "
        f"threshold {app_globals.matcher.threshold}"
    )


def create_app(overrides=None):
    """Factory function that builds the Flask application"""
    app = Flask(__name__)

    app.config.update(config.as_flask_config())
    if overrides:
        app.config.update(overrides)

    setup_logging(app, log_level=app.config['LOG_LEVEL'], log_dir=app.config['LOG_DIR'])
    app.logger.info(f"[STARTUP] Working directory: {os.getcwd()}")

    _init_services(app)

    from app.middleware import register_error_middleware
    register_error_middleware(app)

    from app.routes import register_blueprints
    register_blueprints(app)

    return app
