"""Unit tests for logging functionality."""

import logging
import time

import pytest

from zonekeeper._logging import (
    Timer,
    domain_context,
    get_domain_extra,
    get_logger,
)
from zonekeeper.challenges import Dns01ChallengeProvider


class TestGetLogger:
    """Tests for the get_logger function."""

    def test_logger_hierarchy(self) -> None:
        """Module loggers hang off the package logger."""
        parent = logging.getLogger("zonekeeper")
        child = get_logger("zonekeeper.store")
        assert child.name == "zonekeeper.store"
        assert child.parent is parent


class TestTimer:
    """Tests for the Timer context manager."""

    def test_measures_elapsed_time(self) -> None:
        with Timer() as t:
            time.sleep(0.01)

        assert t.elapsed_ms >= 9
        assert t.elapsed_ms < 1000

    def test_elapsed_starts_at_zero(self) -> None:
        assert Timer().elapsed_ms == 0

    def test_extra_is_rounded(self) -> None:
        timer = Timer()
        timer.elapsed_ms = 12.3456

        assert timer.extra == {"elapsed_ms": 12.3}


class TestNullHandler:
    """Tests for NullHandler setup."""

    def test_package_logger_has_null_handler(self) -> None:
        root = logging.getLogger("zonekeeper")
        assert any(isinstance(h, logging.NullHandler) for h in root.handlers)

    def test_library_silent_by_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        get_logger("zonekeeper.challenges.provider").warning("TXT record did not propagate")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""


class TestLogCapture:
    """Tests for the log_capture fixture."""

    def test_filter_by_logger_name(self, log_capture) -> None:
        get_logger("zonekeeper.store.store").info("Account stored")
        get_logger("zonekeeper.providers.cloudflare").info("Cloudflare request")

        assert log_capture.get_messages(name="zonekeeper.store") == ["Account stored"]
        assert log_capture.get_messages(name="zonekeeper.providers") == ["Cloudflare request"]

    def test_extra_fields_captured(self, log_capture) -> None:
        get_logger("zonekeeper.test").info("Creating TXT record", extra={"record_name": "x"})

        records = log_capture.get_records(logging.INFO)
        assert len(records) == 1
        assert records[0].record_name == "x"

    def test_clear_removes_records(self, log_capture) -> None:
        get_logger("zonekeeper.test").info("one")
        log_capture.clear()
        assert log_capture.records == []


class TestDomainContext:
    """Tests for the challenge domain context."""

    def test_empty_without_context(self) -> None:
        assert get_domain_extra() == {}

    def test_fields_without_context(self) -> None:
        assert get_domain_extra(count=2) == {"count": 2}

    def test_domain_added_inside_context(self) -> None:
        with domain_context("example.com"):
            assert get_domain_extra(error="boom") == {"domain": "example.com", "error": "boom"}

        assert get_domain_extra() == {}

    def test_nested_contexts_restore_outer(self) -> None:
        with domain_context("example.com"):
            with domain_context("api.example.com"):
                assert get_domain_extra() == {"domain": "api.example.com"}
            assert get_domain_extra() == {"domain": "example.com"}

    def test_reset_after_exception(self) -> None:
        with pytest.raises(RuntimeError):
            with domain_context("example.com"):
                raise RuntimeError("boom")

        assert get_domain_extra() == {}

    def test_failed_challenge_logs_carry_domain(self, log_capture, fake_provider) -> None:
        provider = Dns01ChallengeProvider(fake_provider, verify_propagation=None)

        provider.set_challenge({}, "example.org", "token.thumbprint")

        records = log_capture.get_records(logging.ERROR, "zonekeeper.challenges")
        assert records[0].getMessage() == "Failed to set ACME challenge"
        assert records[0].domain == "example.org"
        assert "example.org" in records[0].error
