"""
Tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from roommate_ledger.config import LedgerSettings, get_settings, validate_all_settings


class TestLedgerSettings:
    """Tests for LedgerSettings."""

    def test_defaults(self, monkeypatch):
        """Test defaults when nothing is configured."""
        for name in ("LEDGER_SETTLEMENT_TOLERANCE", "LEDGER_CURRENCY_SYMBOL", "LEDGER_STORAGE_BACKEND"):
            monkeypatch.delenv(name, raising=False)
        settings = LedgerSettings(_env_file=None)
        assert settings.settlement_tolerance == 0.01
        assert settings.currency_symbol == "₹"
        assert settings.storage_backend == "json"

    def test_environment_override(self, monkeypatch):
        """Test LEDGER_ variables override defaults."""
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", " Memory ")
        monkeypatch.setenv("LEDGER_DATA_DIR", "/tmp/ledger")
        settings = LedgerSettings(_env_file=None)
        assert settings.storage_backend == "memory"
        assert str(settings.data_path) == "/tmp/ledger"

    def test_unknown_backend(self, monkeypatch):
        """Test an unknown storage backend is rejected."""
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "floppy")
        with pytest.raises(ValidationError):
            LedgerSettings(_env_file=None)

    def test_tolerance_must_be_positive(self):
        """Test a zero tolerance is rejected."""
        with pytest.raises(ValidationError):
            LedgerSettings(_env_file=None, settlement_tolerance=0)


class TestValidateAllSettings:
    """Tests for validate_all_settings."""

    def test_reports_ledger_and_app(self, monkeypatch):
        """Test Google Sheets is only checked when selected."""
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
        get_settings.cache_clear()
        status = validate_all_settings()
        assert status["ledger"] is True
        assert status["app"] is True
        assert "google_sheets" not in status

    def test_reports_bad_ledger_config(self, monkeypatch):
        """Test an invalid ledger config is reported, not raised."""
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "floppy")
        status = validate_all_settings()
        assert status["ledger"] is False
        assert "ledger_error" in status


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
