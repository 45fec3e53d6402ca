"""
Tests for configuration.
"""

import pytest

from expense_ledger.config import (
    AppSettings,
    SupabaseSettings,
    get_settings,
    validate_all_settings,
)


SUPABASE_VARS = ("SUPABASE_URL", "VITE_SUPABASE_URL", "SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in SUPABASE_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


class TestSupabaseSettings:
    """Tests for Supabase connection settings."""

    def test_plain_names(self, clean_env):
        """Test SUPABASE_* variables."""
        clean_env.setenv("SUPABASE_URL", "https://x.supabase.co")
        clean_env.setenv("SUPABASE_ANON_KEY", "key")
        settings = SupabaseSettings()
        assert settings.url == "https://x.supabase.co"
        assert settings.anon_key == "key"

    def test_vite_names(self, clean_env):
        """Test the VITE_-prefixed variables."""
        clean_env.setenv("VITE_SUPABASE_URL", "https://y.supabase.co")
        clean_env.setenv("VITE_SUPABASE_ANON_KEY", "vite-key")
        assert SupabaseSettings().url == "https://y.supabase.co"

    def test_missing(self, clean_env):
        """Test that missing settings are rejected."""
        with pytest.raises(ValueError):
            SupabaseSettings()

    def test_blank(self, clean_env):
        """Test that blank settings are rejected."""
        clean_env.setenv("SUPABASE_URL", "  ")
        clean_env.setenv("SUPABASE_ANON_KEY", "key")
        with pytest.raises(ValueError):
            SupabaseSettings()

    def test_env_file(self, clean_env, tmp_path):
        """Test that a .env file in the working directory is read."""
        (tmp_path / ".env").write_text(
            "VITE_SUPABASE_URL=https://z.supabase.co\nVITE_SUPABASE_ANON_KEY=file-key\n"
        )
        assert SupabaseSettings().anon_key == "file-key"


class TestAppSettings:
    """Tests for application settings."""

    def test_defaults(self, clean_env):
        """Test default values."""
        settings = AppSettings()
        assert settings.resort_expenses_after_insert is False
        assert settings.future_date_tolerance_days == 7
        assert settings.max_expense_amount == 10_000_000.0
        assert "debug_mode" not in AppSettings.model_fields
        assert "app_environment" not in AppSettings.model_fields

    def test_from_env(self, clean_env):
        """Test overriding from the environment."""
        clean_env.setenv("RESORT_EXPENSES_AFTER_INSERT", "true")
        assert AppSettings().resort_expenses_after_insert is True

    def test_validate_all_settings(self, clean_env):
        """Test the startup check report."""
        results = validate_all_settings()
        assert results["app"] is True
        assert results["supabase"] is False
        assert "supabase_error" in results
