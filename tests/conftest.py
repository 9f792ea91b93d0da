import os

import pytest

from hr_portal_api import create_app
from hr_portal_api.extensions import db
from hr_portal_api.services.biometric_client import UpstreamError


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    os.environ["ATTENDANCE_SYNC_SCHEDULER"] = "false"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    yield db.session


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


class FakeBiometricClient:
    """Stands in for BiometricClient; records every call."""

    def __init__(self, logs=None, users=None, error=None):
        self.logs = logs if logs is not None else []
        self.users = users if users is not None else []
        self.error = error
        self.calls = []
        self.closed = False

    def fetch_logs(self, start, end):
        self.calls.append(("logs", start, end))
        if self.error:
            raise UpstreamError(self.error)
        return list(self.logs)

    def fetch_users(self):
        self.calls.append(("users",))
        if self.error:
            raise UpstreamError(self.error)
        return list(self.users)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_upstream():
    return FakeBiometricClient
