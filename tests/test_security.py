"""
test_security.py — Unit tests for the cron shared-secret check.
"""

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from citytrends.core.security import is_authorized, verify_cron_auth


@pytest.fixture()
def cron_settings():
    import citytrends.core.config as cfg

    original = (cfg.settings.cron_secret, cfg.settings.environment)
    yield cfg.settings
    cfg.settings.cron_secret, cfg.settings.environment = original


class TestIsAuthorized:
    def test_matching_secret(self, cron_settings):
        cron_settings.cron_secret = "s3cret"
        assert is_authorized("s3cret") is True

    def test_wrong_secret(self, cron_settings):
        cron_settings.cron_secret = "s3cret"
        assert is_authorized("guess") is False

    def test_missing_token(self, cron_settings):
        cron_settings.cron_secret = "s3cret"
        assert is_authorized(None) is False
        assert is_authorized("") is False

    def test_unconfigured_secret_is_open_outside_production(self, cron_settings):
        cron_settings.cron_secret = ""
        cron_settings.environment = "development"
        assert is_authorized(None) is True

    def test_unconfigured_secret_is_closed_in_production(self, cron_settings):
        cron_settings.cron_secret = ""
        cron_settings.environment = "production"
        assert is_authorized("anything") is False


class TestVerifyCronAuth:
    def test_raises_401(self, cron_settings):
        cron_settings.cron_secret = "s3cret"
        with pytest.raises(HTTPException) as exc_info:
            verify_cron_auth(HTTPAuthorizationCredentials(scheme="Bearer", credentials="nope"))
        assert exc_info.value.status_code == 401

    def test_accepts_valid_credentials(self, cron_settings):
        cron_settings.cron_secret = "s3cret"
        assert verify_cron_auth(HTTPAuthorizationCredentials(scheme="Bearer", credentials="s3cret")) is None
