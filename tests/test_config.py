"""
Tests for settings parsing and collaborator construction.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from app.core.config import Settings, settings
from app.core.deps import build_identity_delegate, build_verification_manager
from app.services.email_service import email_service
from app.services.firebase_identity import FirebaseIdentityDelegate
from app.services.identity_service import LocalIdentityDelegate


class TestSettings:
    """Test environment driven settings"""

    def test_cors_origins_json(self):
        config = Settings(_env_file=None, BACKEND_CORS_ORIGINS='["https://a.app", "https://b.app"]')
        assert config.BACKEND_CORS_ORIGINS == ["https://a.app", "https://b.app"]

    def test_cors_origins_comma_separated(self):
        config = Settings(_env_file=None, BACKEND_CORS_ORIGINS="https://a.app, https://b.app")
        assert config.BACKEND_CORS_ORIGINS == ["https://a.app", "https://b.app"]

    def test_identity_backend_normalized(self):
        config = Settings(_env_file=None, IDENTITY_BACKEND="Firebase")
        assert config.IDENTITY_BACKEND == "firebase"

    def test_unknown_identity_backend(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, IDENTITY_BACKEND="ldap")

    def test_database_url_from_parts(self):
        config = Settings(
            _env_file=None,
            SQLALCHEMY_DATABASE_URI=None,
            POSTGRES_USER="glam",
            POSTGRES_PASSWORD="secret",
            POSTGRES_SERVER="db",
            POSTGRES_DB="elite_glam"
        )
        assert config.DATABASE_URL == "postgresql://glam:secret@db:5432/elite_glam"

    def test_redis_url(self):
        config = Settings(_env_file=None, REDIS_HOST="cache", REDIS_PORT=6380, REDIS_DB=2)
        assert config.REDIS_URL == "redis://cache:6380/2"


class TestBuildCollaborators:
    """Test wiring of the code manager from settings"""

    def test_local_backend(self, monkeypatch):
        monkeypatch.setattr(settings, "IDENTITY_BACKEND", "local")
        assert isinstance(build_identity_delegate(), LocalIdentityDelegate)

    def test_firebase_backend(self, monkeypatch):
        firebase_app = object()
        monkeypatch.setattr(settings, "IDENTITY_BACKEND", "firebase")
        monkeypatch.setattr("app.services.firebase_identity.get_firebase_app", lambda: firebase_app)

        delegate = build_identity_delegate()

        assert isinstance(delegate, FirebaseIdentityDelegate)
        assert delegate.app is firebase_app

    def test_manager_uses_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "IDENTITY_BACKEND", "local")
        monkeypatch.setattr(settings, "RESET_CODE_TTL_MINUTES", 15)
        monkeypatch.setattr(settings, "RESET_CODE_SWEEP_INTERVAL_SECONDS", 30)

        manager = build_verification_manager()

        assert manager.ttl == timedelta(minutes=15)
        assert manager.sweep_interval_seconds == 30
        assert manager.sender is email_service
        assert not manager.running
