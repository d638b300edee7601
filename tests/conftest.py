"""Pytest configuration and fixtures."""

import base64
import smtplib
import sys
from datetime import datetime
from pathlib import Path

import numpy as np
import pytest

# Add the repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

FIXED_NOW = datetime(2026, 3, 2, 9, 30, 0)


def make_frame(payload=b"\xff\xd8\xff\xe0fake-jpeg"):
    """Base64 frame as sent by the capture page."""
    return "data:image/jpeg;base64," + base64.b64encode(payload).decode("ascii")


class FakeSMTP:
    """Stand-in for smtplib.SMTP that records what would have been sent."""

    def __init__(self, outbox, failures):
        self.outbox = outbox
        self.failures = failures
        self.started_tls = False
        self.logged_in = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def noop(self):
        return (250, b"OK")

    def send_message(self, message):
        if self.failures["remaining"] > 0:
            self.failures["remaining"] -= 1
            raise smtplib.SMTPServerDisconnected("connection dropped")
        self.outbox.append(message)


class FakeSMTPFactory:
    def __init__(self):
        self.outbox = []
        self.failures = {"remaining": 0}
        self.calls = []
        self.refuse = False

    def fail_next(self, count=1):
        self.failures["remaining"] = count

    def __call__(self, host, port, timeout=None):
        self.calls.append((host, port, timeout))
        if self.refuse:
            raise ConnectionRefusedError("connection refused")
        return FakeSMTP(self.outbox, self.failures)


@pytest.fixture
def database(tmp_path):
    """Fresh SQLite database in a temp directory."""
    from database import DatabaseManager

    return DatabaseManager(tmp_path / "attendance.db", retry_delay=0)


@pytest.fixture
def image_store(tmp_path):
    from services.image_store import ImageStore

    return ImageStore(tmp_path / "images")


@pytest.fixture
def smtp_factory():
    return FakeSMTPFactory()


@pytest.fixture
def enroll(database):
    """Insert a student with a given centroid directly into storage."""
    def _enroll(roll_no, name, vector, email=None):
        return database.add_student(
            roll_no,
            name,
            email or f"{roll_no.lower()}@example.com",
            np.asarray(vector, dtype=np.float64),
            [],
            registered_at=FIXED_NOW,
        )
    return _enroll


@pytest.fixture
def app(tmp_path, monkeypatch, smtp_factory):
    """Flask app on temp storage with a pinned clock and a fake SMTP server."""
    from app import create_app
    from app import globals as app_globals
    from services.email_service import EmailService

    flask_app = create_app({
        "TESTING": True,
        "DATABASE_PATH": str(tmp_path / "attendance.db"),
        "IMAGES_DIR": tmp_path / "images",
        "DATA_DIR": tmp_path / "data",
        "LOG_DIR": tmp_path / "logs",
        "LOG_LEVEL": "DEBUG",
        "MIN_ENROLLMENT_FRAMES": 3,
        "FEATURE_VECTOR_LENGTH": 4,
        "EMAIL_FROM": "attendance@example.com",
        "EMAIL_PASSWORD": "",
        "EMAIL_TO": "teacher@example.com",
    })

    app_globals.email_service = EmailService(
        host="smtp.example.com",
        port=587,
        sender="attendance@example.com",
        default_recipient="teacher@example.com",
        data_dir=str(tmp_path / "data"),
        smtp_factory=smtp_factory,
    )
    monkeypatch.setattr(app_globals, "clock", lambda: FIXED_NOW)
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
