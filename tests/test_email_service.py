import pytest

from frenzy.utils.email_service import EmailService


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def sendmail(self, sender, recipients, message):
        if "bounce@frenzy.io" in recipients:
            raise OSError("connection reset")
        FakeSMTP.sent.append(recipients[0])


@pytest.fixture
def smtp_app(app, monkeypatch):
    app.config.update(
        EMAIL_MODE="smtp",
        MAIL_SERVER="smtp.frenzy.io",
        MAIL_USERNAME="mailer",
        MAIL_PASSWORD="secret",
    )
    FakeSMTP.sent = []
    monkeypatch.setattr("frenzy.utils.email_service.smtplib.SMTP", FakeSMTP)
    return app


def body_of(message):
    return message.get_payload()[0].get_payload(decode=True).decode()


def test_console_mode_only_logs(app, player):
    assert EmailService().console_mode
    assert EmailService().send_account_approved_email(player) is True


def test_missing_credentials_fall_back_to_console(app):
    app.config.update(EMAIL_MODE="smtp", MAIL_USERNAME=None)
    assert EmailService().console_mode


def test_reset_email_carries_the_link(app, player, monkeypatch):
    app.config["APP_ORIGIN"] = "https://picks.frenzy.io/"
    captured = []
    monkeypatch.setattr(EmailService, "_send_email", lambda self, message: captured.append(message) or True)

    EmailService().send_password_reset_email(player, "abc123")

    assert captured[0]["To"] == player.email
    assert "https://picks.frenzy.io/reset-password?token=abc123" in body_of(captured[0])


def test_smtp_send(smtp_app, player):
    assert EmailService().send_account_approved_email(player) is True
    assert FakeSMTP.sent == [player.email]


def test_broadcast_keeps_going_after_a_failure(smtp_app, player, make_user):
    bounce = make_user(email="bounce@frenzy.io", first_name="Bo")
    other = make_user(email="other@frenzy.io", first_name="Otto")

    sent, failed = EmailService().send_broadcast([bounce, player, other], "Week 2", "Picks are open")

    assert sent == 2
    assert failed == ["bounce@frenzy.io"]
    assert FakeSMTP.sent == [player.email, other.email]
