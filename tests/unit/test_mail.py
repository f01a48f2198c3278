"""Unit tests for mail templates and the SMTP dispatcher."""

import smtplib

import pytest

from authflow.kernel.errors import MailError
from authflow.kernel.mail import dispatcher as dispatcher_module
from authflow.kernel.mail.dispatcher import MailMessage, SmtpMailDispatcher
from authflow.kernel.mail.templates import build_link, reset_password_email, verify_email_email


class FakeSMTP:
    """Stands in for smtplib.SMTP and records what happened."""

    instances = []
    fail_on = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls = []
        self.sent = []
        FakeSMTP.instances.append(self)
        if FakeSMTP.fail_on == "connect":
            raise ConnectionRefusedError("connection refused")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username))

    def send_message(self, msg, to_addrs=None):
        if FakeSMTP.fail_on == "send":
            raise smtplib.SMTPRecipientsRefused({to_addrs[0]: (550, b"no such user")})
        self.sent.append((msg, to_addrs))


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_on = None
    monkeypatch.setattr(dispatcher_module.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


@pytest.fixture
def message() -> MailMessage:
    return MailMessage(to="user@example.com", subject="Hello", body="plain", html="<p>html</p>")


class TestTemplates:
    """Tests for the transactional email bodies."""

    def test_build_link_joins_with_single_slash(self):
        assert build_link("https://app.example.com/reset/", "tok") == "https://app.example.com/reset/tok"
        assert build_link("https://app.example.com/reset", "tok") == "https://app.example.com/reset/tok"

    def test_reset_password_email(self):
        msg = reset_password_email(
            to="user@example.com",
            name="Ada",
            link="https://app.example.com/reset/abc",
            expires_hours=24,
        )

        assert msg.to == "user@example.com"
        assert msg.subject == "Reset your password"
        assert "https://app.example.com/reset/abc" in msg.body
        assert "24 hours" in msg.body
        assert "https://app.example.com/reset/abc" in msg.html

    def test_verify_email_email(self):
        msg = verify_email_email(to="new@example.com", name="Ada", link="https://app.example.com/verify/xyz")

        assert msg.to == "new@example.com"
        assert msg.subject == "Verify your email"
        assert "https://app.example.com/verify/xyz" in msg.body

    def test_html_escapes_name(self):
        msg = verify_email_email(to="a@example.com", name="<script>", link="https://x/verify/t")

        assert "<script>" not in msg.html
        assert "&lt;script&gt;" in msg.html


class TestSmtpMailDispatcher:
    """Tests for SmtpMailDispatcher."""

    def test_unconfigured_host_raises(self, message):
        dispatcher = SmtpMailDispatcher(host="")

        with pytest.raises(MailError):
            dispatcher.send(message)

    def test_successful_send(self, fake_smtp, message):
        dispatcher = SmtpMailDispatcher(
            host="smtp.example.com",
            port=2525,
            username="mailer",
            password="secret",
            from_email="noreply@example.com",
            timeout=3.0,
        )

        assert dispatcher.send(message) is True

        smtp = fake_smtp.instances[0]
        assert (smtp.host, smtp.port, smtp.timeout) == ("smtp.example.com", 2525, 3.0)
        assert smtp.calls == ["starttls", ("login", "mailer")]
        sent, to_addrs = smtp.sent[0]
        assert to_addrs == ["user@example.com"]
        assert sent["From"] == "noreply@example.com"
        assert sent["Subject"] == "Hello"

    def test_no_tls_no_login(self, fake_smtp, message):
        dispatcher = SmtpMailDispatcher(host="localhost", port=25, use_tls=False)

        assert dispatcher.send(message) is True
        assert fake_smtp.instances[0].calls == []

    def test_refused_recipient_returns_false(self, fake_smtp, message):
        fake_smtp.fail_on = "send"
        dispatcher = SmtpMailDispatcher(host="smtp.example.com")

        assert dispatcher.send(message) is False

    def test_connection_failure_returns_false(self, fake_smtp, message):
        fake_smtp.fail_on = "connect"
        dispatcher = SmtpMailDispatcher(host="smtp.example.com")

        assert dispatcher.send(message) is False

    def test_gmail_sends_as_authenticated_account(self):
        dispatcher = SmtpMailDispatcher(
            host="smtp.gmail.com",
            username="me@gmail.com",
            password="app-password",
            from_email="noreply@example.com",
        )
        msg = dispatcher.build(MailMessage(to="a@example.com", subject="s", body="b"))

        assert msg["From"] == "me@gmail.com"
        # Plain part only when no HTML is given
        assert len(msg.get_payload()) == 1
