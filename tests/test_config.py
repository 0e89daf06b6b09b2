import pytest

from reachmai.cli import seed_admin
from reachmai.config import Settings
from reachmai.database import Database
from reachmai.exceptions import ConfigurationError
from reachmai.models.account import Account
from reachmai.services.email import (
    PASSWORD_RESET_TEMPLATE,
    STAFF_INVITATION_TEMPLATE,
    USER_SETUP_TEMPLATE,
    LoggingNotifier,
    SendGridNotifier,
    build_notifier,
    render,
)


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_production_refuses_fallback_secrets(self):
        settings = make_settings(environment="production")
        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_for_environment()
        assert "JWT_SECRET_KEY" in exc_info.value.message
        assert exc_info.value.details["settings"] == [
            "JWT_SECRET_KEY",
            "SYS_ADMIN_USERNAME",
            "SYS_ADMIN_PASSWORD",
        ]

    def test_production_with_real_secrets(self):
        settings = make_settings(
            environment="production",
            jwt_secret_key="a-long-random-secret",
            sys_admin_username="ops",
            sys_admin_password="a-long-random-password",
        )
        settings.validate_for_environment()
        assert settings.insecure_defaults() == []

    def test_development_allows_fallbacks(self):
        settings = make_settings(environment="development")
        settings.validate_for_environment()
        assert not settings.is_production

    def test_cors_origins_merge_and_dedupe(self):
        settings = make_settings(
            cors_allowed_origins="https://portal.reachmai.org/, http://localhost:5173 ,,"
        )
        assert settings.get_cors_origins() == [
            "http://localhost:5173",
            "http://localhost:3000",
            "https://portal.reachmai.org",
        ]


class TestEmail:
    @pytest.mark.parametrize(
        "template,data,path",
        [
            (STAFF_INVITATION_TEMPLATE, {"first_name": "Terry", "role": "teacher", "token": "abc"}, "/accept-invitation?token=abc"),
            (USER_SETUP_TEMPLATE, {"first_name": "Pat", "profile_type": "student", "token": "abc"}, "/setup-profile?token=abc"),
            (PASSWORD_RESET_TEMPLATE, {"first_name": "Dana", "token": "abc"}, "/reset-password?token=abc"),
        ],
    )
    def test_render_links_to_frontend(self, settings, template, data, path):
        subject, html = render(template, data, settings)
        assert subject
        assert f"https://portal.example.com{path}" in html

    def test_render_escapes_names(self, settings):
        _, html = render(
            STAFF_INVITATION_TEMPLATE,
            {"first_name": "<script>", "role": "teacher", "token": "abc"},
            settings,
        )
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_unknown_template(self, settings):
        with pytest.raises(ValueError):
            render("newsletter", {}, settings)

    def test_without_api_key_nothing_is_sent(self, settings):
        notifier = build_notifier(settings)
        assert isinstance(notifier, LoggingNotifier)
        assert notifier.send("a@example.com", PASSWORD_RESET_TEMPLATE, {"token": "abc"}) is False

    def test_sendgrid_failure_reports_not_sent(self, settings):
        class FailingClient:
            def send(self, message):
                raise RuntimeError("sendgrid unavailable")

        notifier = SendGridNotifier(settings.model_copy(update={"sendgrid_api_key": "SG.test"}))
        notifier._client = FailingClient()
        assert notifier.send("a@example.com", PASSWORD_RESET_TEMPLATE, {"token": "abc"}) is False

    def test_sendgrid_accepted_status(self, settings):
        class AcceptingClient:
            def __init__(self):
                self.messages = []

            def send(self, message):
                self.messages.append(message)
                return type("Response", (), {"status_code": 202})()

        notifier = SendGridNotifier(settings.model_copy(update={"sendgrid_api_key": "SG.test"}))
        notifier._client = client = AcceptingClient()
        assert notifier.send("a@example.com", PASSWORD_RESET_TEMPLATE, {"token": "abc"}) is True
        assert len(client.messages) == 1


class TestSeedAdmin:
    def test_seed_is_idempotent(self, capsys):
        database = Database("sqlite:///:memory:")
        database.init()
        try:
            assert seed_admin(database, "Owner@example.com", "owner-pass-1", "Olive", "Owner") == 0
            assert seed_admin(database, "owner@example.com", "other-pass-1", "Olive", "Owner") == 0

            with database.session_scope() as db:
                [account] = db.query(Account).all()
                assert account.email == "owner@example.com"
                assert [p.profile_type for p in account.profiles] == ["admin"]
        finally:
            database.close()

        assert "Account already exists" in capsys.readouterr().out
