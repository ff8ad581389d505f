"""Outgoing email through the active SMTP configuration."""

from __future__ import annotations

import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

from flask import current_app, render_template

from models.smtp_config import SmtpConfig
from utils.errors import EmailDispatchError

SMTP_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class SmtpSettings:
    """Connection settings for one send, stored or supplied ad hoc."""

    host: str
    port: int
    secure: bool
    user: str
    password: str
    from_email: str
    from_name: str

    @classmethod
    def from_config(cls, config: SmtpConfig) -> "SmtpSettings":
        return cls(
            host=config.host,
            port=config.port,
            secure=config.secure,
            user=config.auth_user,
            password=config.auth_pass,
            from_email=config.from_email,
            from_name=config.from_name,
        )

    @property
    def sender(self) -> str:
        return formataddr((self.from_name, self.from_email))


def active_settings() -> SmtpSettings:
    """Return the active SMTP settings or raise :class:`EmailDispatchError`."""

    config = SmtpConfig.active()
    if config is None:
        raise EmailDispatchError("No active SMTP configuration.")
    return SmtpSettings.from_config(config)


def _connect(settings: SmtpSettings) -> smtplib.SMTP:
    if settings.secure:
        return smtplib.SMTP_SSL(
            settings.host,
            settings.port,
            timeout=SMTP_TIMEOUT_SECONDS,
            context=ssl.create_default_context(),
        )

    connection = smtplib.SMTP(settings.host, settings.port, timeout=SMTP_TIMEOUT_SECONDS)
    connection.ehlo()
    if connection.has_extn("starttls"):
        connection.starttls(context=ssl.create_default_context())
        connection.ehlo()
    return connection


def deliver(settings: SmtpSettings, to: str, subject: str, html: str) -> str:
    """Send one HTML message and return its Message-ID. Single attempt."""

    message = EmailMessage()
    message["From"] = settings.sender
    message["To"] = to
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain=settings.from_email.rpartition("@")[2] or None)
    message.set_content("This message requires an HTML capable mail client.")
    message.add_alternative(html, subtype="html")

    try:
        with _connect(settings) as connection:
            if settings.user:
                connection.login(settings.user, settings.password)
            connection.send_message(message)
    except (smtplib.SMTPException, OSError) as error:
        current_app.logger.warning(
            "SMTP delivery to %s via %s:%s failed: %s",
            to,
            settings.host,
            settings.port,
            error,
        )
        raise EmailDispatchError(str(error)) from error

    current_app.logger.info("Email '%s' sent to %s", subject, to)
    return message["Message-ID"]


def send_email(to: str, subject: str, html: str) -> str:
    """Send a message through the active SMTP configuration."""

    return deliver(active_settings(), to, subject, html)


def send_verification_email(user, verification_url: str) -> str:
    html = render_template(
        "email/verification.html", user=user, verification_url=verification_url
    )
    return send_email(user.email, "Confirm your email address", html)


def send_approval_email(user, login_url: str) -> str:
    html = render_template("email/approval.html", user=user, login_url=login_url)
    return send_email(user.email, "Your account has been approved", html)


def send_password_reset_email(user, reset_url: str) -> str:
    html = render_template("email/password_reset.html", user=user, reset_url=reset_url)
    return send_email(user.email, "Reset your password", html)


def send_test_email(settings: SmtpSettings, to: str) -> str:
    """Send the SMTP settings test message using the given settings."""

    html = render_template("email/smtp_test.html", settings=settings)
    return deliver(settings, to, "SMTP settings test", html)
