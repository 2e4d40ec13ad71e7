"""Tests for rips_generation.core.config."""

import os

import pytest

from rips_generation.core.config import DefaultCodes, RipsSettings
from rips_generation.core.enums import ContextMode, JoinMode
from rips_generation.core.exceptions import ConfigurationError


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No RIPS_* variables and no .env file in the working directory."""
    for key in list(os.environ):
        if key.upper().startswith("RIPS_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestRipsSettings:
    def test_defaults(self, clean_env):
        settings = RipsSettings()
        assert settings.source_database_url is None
        assert settings.context_mode == ContextMode.SHADOWING
        assert settings.join_mode == JoinMode.HEURISTIC
        assert settings.max_fetch_workers == 4
        assert settings.default_codes == DefaultCodes()
        assert settings.procedure_code_types == ["CPT4", "HCPCS", "CUPS"]

    def test_reads_prefixed_environment(self, clean_env):
        clean_env.setenv("RIPS_SOURCE_DATABASE_URL", "sqlite://")
        clean_env.setenv("RIPS_CONTEXT_MODE", "namespaced")
        clean_env.setenv("RIPS_DEFAULT_CODES__SERVICE_CODE", "329")
        clean_env.setenv("RIPS_LOG_LEVEL", "debug")

        settings = RipsSettings.from_environment()
        assert settings.source_database_url == "sqlite://"
        assert settings.context_mode == ContextMode.NAMESPACED
        assert settings.default_codes.service_code == "329"
        assert settings.log_level == "DEBUG"

    def test_join_mode_is_case_insensitive(self, clean_env):
        clean_env.setenv("RIPS_JOIN_MODE", " Declared ")
        clean_env.setenv("RIPS_DECLARED_JOINS", '{"billing": {"encounter": "encounter"}}')
        settings = RipsSettings()
        assert settings.join_mode == JoinMode.DECLARED
        assert settings.declared_joins == {"billing": {"encounter": "encounter"}}

    def test_unknown_join_mode(self, clean_env):
        clean_env.setenv("RIPS_JOIN_MODE", "guess")
        with pytest.raises(ConfigurationError):
            RipsSettings.from_environment(validate_on_load=False)

    def test_generation_requires_source_url(self, clean_env):
        with pytest.raises(ConfigurationError):
            RipsSettings.from_environment()
        settings = RipsSettings.from_environment(validate_on_load=False)
        with pytest.raises(ConfigurationError):
            settings.validate_for_generation()

    def test_invalid_value_is_configuration_error(self, clean_env):
        clean_env.setenv("RIPS_MAX_FETCH_WORKERS", "0")
        with pytest.raises(ConfigurationError, match="Invalid RIPS configuration"):
            RipsSettings.from_environment(validate_on_load=False)

    def test_settings_are_frozen(self, clean_env):
        settings = RipsSettings()
        with pytest.raises(ValueError):
            settings.max_fetch_workers = 8

    def test_to_dict_masks_passwords(self, clean_env):
        settings = RipsSettings(
            source_database_url="mysql+pymysql://openemr:secret@db:3306/openemr",
            local_database_url="sqlite:///rips_local.db",
        )
        summary = settings.to_dict()
        assert summary["source_database_url"] == "mysql+pymysql://openemr:***@db:3306/openemr"
        assert summary["local_database_url"] == "sqlite:///rips_local.db"
        assert "secret" not in str(summary)
