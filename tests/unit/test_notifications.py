"""Tests for mail backends and notification rendering."""
import smtplib
from datetime import datetime
from unittest.mock import MagicMock, patch

import httpx

from tms.config import EmailConfig, Settings
from tms.notifications import emails
from tms.notifications.mailer import (
    GmailApiMailer,
    LogMailer,
    SmtpMailer,
    create_mailer,
    normalize_recipients,
)


class TestRecipients:
    def test_single_address(self):
        assert normalize_recipients("a@example.com") == ["a@example.com"]

    def test_dedupe_and_strip(self):
        to = [" a@example.com", "b@example.com", "a@example.com", "", None]
        assert normalize_recipients(to) == ["a@example.com", "b@example.com"]


class TestCreateMailer:
    def test_log_backend_by_default(self):
        assert isinstance(create_mailer(Settings()), LogMailer)

    def test_smtp_backend(self):
        settings = Settings(email=EmailConfig(backend="smtp", username="u", password="p"))
        assert isinstance(create_mailer(settings), SmtpMailer)

    def test_gmail_without_credentials_falls_back(self):
        settings = Settings(email=EmailConfig(backend="gmail_api"))
        assert isinstance(create_mailer(settings), LogMailer)

    def test_gmail_backend(self):
        settings = Settings(email=EmailConfig(backend="gmail_api", client_id="id", refresh_token="rt"))
        assert isinstance(create_mailer(settings), GmailApiMailer)


class TestSmtpMailer:
    def test_sends_with_starttls_and_login(self):
        config = EmailConfig(backend="smtp", username="bot@example.com", password="pw")
        with patch("tms.notifications.mailer.smtplib.SMTP") as smtp_cls:
            smtp = smtp_cls.return_value.__enter__.return_value
            ok = SmtpMailer(config).send(["a@example.com"], "Hello", "text", "<p>html</p>")
        assert ok is True
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("bot@example.com", "pw")
        args = smtp.sendmail.call_args[0]
        assert args[1] == ["a@example.com"]
        assert "Subject: Hello" in args[2]

    def test_failure_is_logged_not_raised(self):
        config = EmailConfig(backend="smtp")
        with patch("tms.notifications.mailer.smtplib.SMTP", side_effect=smtplib.SMTPException("down")):
            assert SmtpMailer(config).send("a@example.com", "Hello", "text") is False

    def test_no_recipients(self):
        assert SmtpMailer(EmailConfig()).send([], "Hello", "text") is False


class TestGmailApiMailer:
    def _config(self):
        return EmailConfig(backend="gmail_api", client_id="id", client_secret="cs", refresh_token="rt")

    def test_refreshes_token_and_sends(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            if "oauth2" in str(request.url):
                return httpx.Response(200, json={"access_token": "tok"})
            assert request.headers["Authorization"] == "Bearer tok"
            return httpx.Response(200, json={"id": "msg-1"})

        transport = httpx.MockTransport(handler)
        real_client = httpx.Client
        with patch("tms.notifications.mailer.httpx.Client",
                   lambda **kw: real_client(transport=transport, **kw)):
            ok = GmailApiMailer(self._config()).send("a@example.com", "Hello", "text")
        assert ok is True
        assert len(calls) == 2

    def test_http_error_returns_false(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        real_client = httpx.Client
        with patch("tms.notifications.mailer.httpx.Client",
                   lambda **kw: real_client(transport=transport, **kw)):
            assert GmailApiMailer(self._config()).send("a@example.com", "Hello", "text") is False

    def test_non_json_token_response_returns_false(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        real_client = httpx.Client
        with patch("tms.notifications.mailer.httpx.Client",
                   lambda **kw: real_client(transport=transport, **kw)):
            assert GmailApiMailer(self._config()).send("a@example.com", "Hello", "text") is False


class TestNotificationEmails:
    def test_render_uses_layout_for_html(self):
        text, html = emails.render("task_assigned", subject="New Task Assigned!",
                                   task_title="Ship it", due_date=datetime(2026, 5, 1, 9, 0))
        assert "Ship it" in text
        assert "May 01, 2026" in text
        assert "<html" in html.lower()

    def test_task_assigned(self, mailer):
        assert emails.send_task_assigned(mailer, "a@example.com", "Ship it", datetime(2026, 5, 1))
        assert mailer.sent[0]["subject"] == "New Task Assigned!"
        assert mailer.sent[0]["to"] == ["a@example.com"]

    def test_no_recipients_skips_send(self, mailer):
        assert emails.send_project_removed(mailer, [], "Apollo") is False
        assert mailer.sent == []

    def test_welcome_includes_password_only_when_given(self, mailer):
        emails.send_welcome(mailer, "a@example.com", "Ann", "a@example.com", "Temp#1234")
        emails.send_welcome(mailer, "b@example.com", "Bob", "b@example.com")
        assert "Temp#1234" in mailer.sent[0]["text"]
        assert "Temp#1234" not in mailer.sent[1]["text"]

    def test_department_change_one_mail_per_member(self, mailer):
        sent = emails.send_department_change(
            mailer, ["a@example.com", "b@example.com", "a@example.com"],
            "Jane", "Doe", "jane@example.com", "User", "design",
        )
        assert sent == 2
        assert mailer.subjects() == ["Department Update Notification"] * 2

    def test_report_subject_and_html(self, mailer):
        emails.send_report(mailer, ["boss@example.com"], "Q1 status", "project", "All green", "Ada Admin")
        message = mailer.sent[0]
        assert message["subject"] == "Project Report: Q1 status"
        assert "All green" in message["html"]

    def test_comment_mail_names_author(self, mailer):
        author = {"full_name": "Ada Admin", "email": "admin@example.com", "role": "Admin"}
        emails.send_comment(mailer, ["a@example.com"], "Looks good", author, 'task "Ship it"')
        assert mailer.sent[0]["subject"] == "New Comment by Ada Admin"
        assert "Looks good" in mailer.sent[0]["text"]

    def test_log_mailer(self):
        assert LogMailer().send(["a@example.com"], "Hello", "text") is True
        assert LogMailer().send([], "Hello", "text") is False

    def test_failed_mailer_is_reported(self):
        failing = MagicMock()
        failing.send.return_value = False
        assert emails.send_task_overdue(failing, "a@example.com", "Ship it", datetime(2026, 5, 1)) is False
