"""Outgoing mail backends.

Three backends share the ``Mailer`` protocol:
  - SmtpMailer:     smtplib with STARTTLS (EMAIL_USER / EMAIL_PASS)
  - GmailApiMailer: Gmail REST API over httpx, OAuth refresh token flow
  - LogMailer:      writes the message to the log; used when mail is not configured

Every backend catches its own failures, logs them and returns False.
Notification mail must never break the request that triggered it.
"""

import base64
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Iterable, Optional, Protocol, Union

import httpx

from ..config import EmailConfig, Settings, get_config

logger = logging.getLogger(__name__)

OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"

Recipients = Union[str, Iterable[str]]


class Mailer(Protocol):
    """Mail backend protocol."""

    def send(self, to: Recipients, subject: str, text: str, html: Optional[str] = None) -> bool:
        """Send one message to all recipients, return True on success."""
        ...


def normalize_recipients(to: Recipients) -> list[str]:
    """Flatten, strip and de-duplicate recipients, keeping order."""
    if isinstance(to, str):
        to = [to]
    seen: list[str] = []
    for address in to:
        address = (address or "").strip()
        if address and address not in seen:
            seen.append(address)
    return seen


def build_message(sender: str, recipients: list[str], subject: str, text: str, html: Optional[str]) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = ", ".join(recipients)

    # Plain text fallback
    msg.attach(MIMEText(text, "plain", "utf-8"))

    # HTML version
    if html:
        msg.attach(MIMEText(html, "html", "utf-8"))
    return msg


class LogMailer:
    """Logs instead of sending."""

    def send(self, to: Recipients, subject: str, text: str, html: Optional[str] = None) -> bool:
        recipients = normalize_recipients(to)
        if not recipients:
            return False
        logger.info(f"[mail:log] to={', '.join(recipients)} subject={subject!r}")
        logger.debug(text)
        return True


class SmtpMailer:
    """SMTP with optional STARTTLS."""

    def __init__(self, config: EmailConfig):
        self.config = config

    def send(self, to: Recipients, subject: str, text: str, html: Optional[str] = None) -> bool:
        recipients = normalize_recipients(to)
        if not recipients:
            return False
        msg = build_message(self.config.sender, recipients, subject, text, html)
        try:
            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=self.config.timeout_s) as smtp:
                if self.config.smtp_starttls:
                    smtp.starttls()
                if self.config.username:
                    smtp.login(self.config.username, self.config.password)
                smtp.sendmail(self.config.sender, recipients, msg.as_string())
            logger.info(f"Email sent to {', '.join(recipients)}: {subject}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email send failed ({subject}): {e}")
            return False


class GmailApiMailer:
    """Gmail API adapter using the OAuth refresh token flow."""

    def __init__(self, config: EmailConfig):
        self.config = config
        self._access_token: Optional[str] = None

    def _get_access_token(self, client: httpx.Client) -> str:
        """Get OAuth access token via refresh token."""
        if self._access_token:
            return self._access_token

        resp = client.post(
            OAUTH_TOKEN_URL,
            data={
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "refresh_token": self.config.refresh_token,
                "grant_type": "refresh_token",
            },
        )
        resp.raise_for_status()
        self._access_token = resp.json()["access_token"]
        return self._access_token

    def send(self, to: Recipients, subject: str, text: str, html: Optional[str] = None) -> bool:
        recipients = normalize_recipients(to)
        if not recipients:
            return False
        msg = build_message("me", recipients, subject, text, html)
        raw = base64.urlsafe_b64encode(msg.as_bytes()).decode()
        try:
            with httpx.Client(timeout=self.config.timeout_s) as client:
                token = self._get_access_token(client)
                resp = client.post(
                    GMAIL_SEND_URL,
                    headers={"Authorization": f"Bearer {token}"},
                    json={"raw": raw},
                )
                if resp.status_code == 401:
                    # Cached token expired; refresh once
                    self._access_token = None
                    token = self._get_access_token(client)
                    resp = client.post(
                        GMAIL_SEND_URL,
                        headers={"Authorization": f"Bearer {token}"},
                        json={"raw": raw},
                    )
                resp.raise_for_status()
            logger.info(f"Email sent to {', '.join(recipients)}: {subject}")
            return True
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"Email send failed ({subject}): {e}")
            return False


def create_mailer(settings: Optional[Settings] = None) -> Mailer:
    """Factory: creates the configured mail backend."""
    config = (settings or get_config()).email

    if config.backend == "smtp":
        if not (config.username and config.password):
            logger.warning("SMTP backend selected without credentials, attempting anonymous relay")
        return SmtpMailer(config)
    elif config.backend == "gmail_api":
        if not (config.client_id and config.refresh_token):
            logger.warning("Gmail API backend not configured, falling back to log mailer")
            return LogMailer()
        return GmailApiMailer(config)
    return LogMailer()


_mailer: Optional[Mailer] = None


def get_mailer() -> Mailer:
    """FastAPI dependency and job accessor for the process-wide mailer."""
    global _mailer
    if _mailer is None:
        _mailer = create_mailer()
        logger.info(f"Mail backend: {_mailer.__class__.__name__}")
    return _mailer


def reset_mailer() -> None:
    global _mailer
    _mailer = None
