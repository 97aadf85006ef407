"""
Tests for settings validation and input schemas.
"""
import pytest
from pydantic import ValidationError

from linkly.core.config import Settings
from linkly.schemas.link import LinkCreate, validate_short_code


class TestSettings:
    """Test configuration loading"""

    @pytest.mark.parametrize("password", ["", "   "])
    def test_blank_admin_password_is_fatal(self, password):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, admin_password=password)

    def test_trailing_slashes_are_stripped(self):
        settings = Settings(
            _env_file=None,
            admin_password="x",
            base_url="https://sho.rt/",
            root_redirect_url="https://example.com/",
        )
        assert settings.base_url == "https://sho.rt"
        assert settings.root_redirect_url == "https://example.com"

    def test_defaults(self):
        settings = Settings(_env_file=None, admin_password="x")
        assert settings.session_duration_hours == 24
        assert settings.login_failure_delay_seconds >= 0
        assert settings.geo_api_url == "http://ip-api.com/json"


class TestShortCodes:
    """Test custom short code validation"""

    @pytest.mark.parametrize("code", ["q3-report", "abc", "A_b-9", "x" * 32])
    def test_valid_codes(self, code):
        assert validate_short_code(code) == code

    @pytest.mark.parametrize(
        "code",
        ["ab", "x" * 33, "has space", "slash/y", "dot.ted", "ümlaut", "api", "health", "Metrics", "docs"],
    )
    def test_invalid_or_reserved_codes(self, code):
        with pytest.raises(ValueError):
            validate_short_code(code)

    def test_blank_custom_code_means_generated(self):
        link = LinkCreate(destination_url="https://example.com/", custom_code="  ")
        assert link.custom_code is None

    @pytest.mark.parametrize("url", ["ftp://example.com/file", "javascript:alert(1)", "not a url"])
    def test_only_http_destinations(self, url):
        with pytest.raises(ValidationError):
            LinkCreate(destination_url=url)
