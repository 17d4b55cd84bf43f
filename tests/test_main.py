"""Tests for the CLI entry point."""

from __future__ import annotations

import json
import logging

import httpx
import pytest

from kontur_senders.__main__ import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_SUCCESS,
    build_test_notification,
    configure_logging,
    create_parser,
    main,
    run_config_check,
    send_test_notification,
    validate_config,
)
from kontur_senders.models import State
from kontur_senders.senders import MailSender, SmsSender

SMS_CONFIG = {
    "url": "https://sms.example.com/messages",
    "login": "login",
    "password": "password",
    "front_uri": "http://moira.example.com",
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove gateway settings inherited from the environment."""
    for name in (
        "KONTUR_SMS_URL",
        "KONTUR_MAIL_URL",
        "SHORTENER_URL",
        "SHORTENER_API_KEY",
        "LOG_LEVEL",
        "DRY_RUN",
        "TIMEZONE",
        "FRONT_URI",
    ):
        monkeypatch.delenv(name, raising=False)


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_parser_has_version(self):
        """Parser should have version flag."""
        parser = create_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_parser_test_targets(self):
        """Parser should accept test notification targets."""
        parser = create_parser()
        args = parser.parse_args(["--test-sms", "9123456789", "--test-mail", "a@example.com"])
        assert args.test_sms == "9123456789"
        assert args.test_mail == "a@example.com"

    def test_parser_default_values(self):
        """Parser should have correct defaults."""
        parser = create_parser()
        args = parser.parse_args([])
        assert args.config_check is False
        assert args.log_level is None
        assert args.dry_run is False
        assert args.test_sms is None
        assert args.test_mail is None


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_logging_info(self):
        """Should configure logging at INFO level."""
        configure_logging("INFO")
        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_configure_logging_debug(self):
        """Should configure logging at DEBUG level."""
        configure_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG


class TestValidateConfig:
    """Tests for configuration validation."""

    def test_validate_config_success(self):
        """Should return settings on valid config."""
        assert validate_config() is not None

    def test_validate_config_failure(self, monkeypatch, capsys):
        """Should return None on invalid config."""
        monkeypatch.setenv("KONTUR_SMS_URL", "not-a-url")

        assert validate_config() is None

        captured = capsys.readouterr()
        assert "Configuration validation failed" in captured.err


class TestRunConfigCheck:
    """Tests for config check mode."""

    def test_config_check_prints_summary(self, monkeypatch, capsys):
        """Config check should print configuration summary."""
        monkeypatch.setenv("KONTUR_SMS_URL", "https://sms.example.com")

        settings = validate_config()
        assert settings is not None
        assert run_config_check(settings) == EXIT_SUCCESS

        captured = capsys.readouterr()
        assert "Configuration is valid!" in captured.out
        assert "SMS: enabled" in captured.out
        assert "Mail: disabled" in captured.out

    def test_config_check_without_gateways(self, capsys):
        """Config check should fail when no gateway is configured."""
        settings = validate_config()
        assert settings is not None
        assert run_config_check(settings) == EXIT_CONFIG_ERROR
        assert "No gateway configured" in capsys.readouterr().err


class TestSendTestNotification:
    """Tests for test notifications."""

    def test_build_test_notification(self):
        """Test notification should use the TEST state."""
        events, trigger = build_test_notification()
        assert len(events) == 1
        assert events[0].state is State.TEST
        assert trigger.name == "Test trigger"

    def test_sms_dry_run(self, capsys):
        """Dry run should print the SMS request body."""
        result = send_test_notification(SmsSender(), SMS_CONFIG, "9123456789", dry_run=True)
        assert result == EXIT_SUCCESS

        body = json.loads(capsys.readouterr().out)
        assert body["text"] == "Test trigger\nTEST Test.metric.value 1\nhttp://moira.example.com"
        assert body["destinationAddress"]["address"] == "+79123456789"

    def test_mail_dry_run(self, capsys):
        """Dry run should print the mail request body."""
        config = {"url": "https://mail.example.com", "front_uri": "http://moira.example.com"}
        result = send_test_notification(MailSender(), config, "a@example.com", dry_run=True)
        assert result == EXIT_SUCCESS

        body = json.loads(capsys.readouterr().out)
        assert body["subject"] == "TEST Test trigger [test]"
        assert body["vars"]["is_test"] is True

    def test_sms_delivered(self):
        """Test SMS should be sent through the gateway."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201)

        sender = SmsSender(transport=httpx.MockTransport(handler))
        result = send_test_notification(sender, SMS_CONFIG, "9123456789", dry_run=False)

        assert result == EXIT_SUCCESS
        assert len(requests) == 1

    def test_gateway_failure(self):
        """Gateway errors should produce an error exit code."""
        sender = SmsSender(transport=httpx.MockTransport(lambda _: httpx.Response(500)))
        result = send_test_notification(sender, SMS_CONFIG, "9123456789", dry_run=False)
        assert result == EXIT_ERROR

    def test_invalid_phone(self):
        """Invalid phone numbers should produce an error exit code."""
        result = send_test_notification(SmsSender(), SMS_CONFIG, "+71234567890", dry_run=True)
        assert result == EXIT_ERROR

    def test_invalid_sender_config(self):
        """Missing gateway URL should produce a config error exit code."""
        result = send_test_notification(SmsSender(), {"url": ""}, "9123456789", dry_run=True)
        assert result == EXIT_CONFIG_ERROR


class TestMain:
    """Tests for main entry point."""

    def test_main_with_config_check(self, monkeypatch):
        """Main should exit successfully with --config-check."""
        monkeypatch.setenv("KONTUR_MAIL_URL", "https://mail.example.com")

        with pytest.raises(SystemExit) as exc_info:
            main(["--config-check"])

        assert exc_info.value.code == EXIT_SUCCESS

    def test_main_with_invalid_config(self, monkeypatch):
        """Main should exit with config error on invalid config."""
        monkeypatch.setenv("LOG_LEVEL", "TRACE")

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == EXIT_CONFIG_ERROR

    def test_main_without_action(self, capsys):
        """Main should fail when there is nothing to do."""
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == EXIT_ERROR
        assert "Nothing to do" in capsys.readouterr().err

    def test_main_sms_dry_run(self, monkeypatch, capsys):
        """Main should print the test SMS in dry-run mode."""
        monkeypatch.setenv("KONTUR_SMS_URL", "https://sms.example.com")
        monkeypatch.setenv("FRONT_URI", "http://moira.example.com")

        with pytest.raises(SystemExit) as exc_info:
            main(["--test-sms", "9123456789", "--dry-run"])

        assert exc_info.value.code == EXIT_SUCCESS
        assert "http://moira.example.com" in capsys.readouterr().out

    def test_main_unconfigured_mail(self):
        """Main should report a config error for an unconfigured gateway."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--test-mail", "a@example.com", "--dry-run"])

        assert exc_info.value.code == EXIT_CONFIG_ERROR


class TestIntegration:
    """Integration tests for CLI invocation."""

    def test_cli_help_option(self, capsys):
        """CLI should display help with -h option."""
        with pytest.raises(SystemExit) as exc_info:
            main(["-h"])

        assert exc_info.value.code == 0
        captured = capsys.readouterr()
        assert "kontur-senders" in captured.out
        assert "--config-check" in captured.out
        assert "--test-sms" in captured.out

    def test_cli_version_option(self, capsys):
        """CLI should display version with --version option."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "0.1.0" in capsys.readouterr().out

    def test_cli_invalid_log_level(self, capsys):
        """CLI should reject invalid log level."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--log-level", "INVALID"])

        assert exc_info.value.code != 0
        assert "invalid choice" in capsys.readouterr().err
