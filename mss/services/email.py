"""
services/email.py

Transactional email: account verification and password reset.

Messages go out over SMTP (STARTTLS or implicit SSL). When SMTP_HOST is
not configured the message is logged instead of sent, which keeps local
development and tests free of a mail server.

Delivery failures raise EmailDeliveryError; the caller decides whether
that fails the surrounding operation.

Related files:
- mss.core.config        : SMTP_* / MAIL_* / FRONTEND_URL
- mss.services.auth      : sends verification and reset messages

"""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import urlencode

from mss.core.config import Settings, settings
from mss.core.errors import EmailDeliveryError
from mss.core.logging import redact_email

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "MSS Account Verification"
PASSWORD_RESET_SUBJECT = "MSS Password Reset"

_LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>{title}</title>
</head>
<body style="font-family: Arial, sans-serif; background-color: #f4f4f9; margin: 0; padding: 20px;">
  <div style="max-width: 600px; margin: auto; background: #ffffff; border-radius: 8px; border: 1px solid #dddddd;">
    <div style="padding: 20px;">
      <h1 style="color: #333333; font-size: 24px;">{title}</h1>
      {body}
    </div>
    <div style="text-align: center; background-color: #f8f9fa; padding: 10px; color: #6c757d; font-size: 14px;">
      <p>Need help? Contact us at <a href="mailto:support@mss.com">support@mss.com</a></p>
    </div>
  </div>
</body>
</html>
"""

_BUTTON = (
    '<a href="{href}" style="display: block; text-align: center; background-color: #007bff; '
    'color: #ffffff; padding: 12px 20px; text-decoration: none; font-size: 18px; '
    'border-radius: 5px;">{label}</a>'
)


class EmailService:
    def __init__(
        self,
        *,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        timeout: float = 30.0,
        from_email: str | None = None,
        from_name: str = "MSS",
        frontend_url: str = "http://localhost:4200/",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.timeout = timeout
        self.from_email = from_email or smtp_user
        self.from_name = from_name
        self.frontend_url = frontend_url

    @classmethod
    def from_settings(cls, config: Settings) -> "EmailService":
        return cls(
            smtp_host=config.SMTP_HOST,
            smtp_port=config.SMTP_PORT,
            smtp_user=config.SMTP_USER,
            smtp_password=config.SMTP_PASSWORD.get_secret_value() if config.SMTP_PASSWORD else None,
            smtp_use_tls=config.SMTP_USE_TLS,
            timeout=config.SMTP_TIMEOUT_SEC,
            from_email=config.MAIL_FROM,
            from_name=config.MAIL_FROM_NAME,
            frontend_url=config.FRONTEND_URL,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    def _link(self, path: str, code: str, email: str) -> str:
        return f"{self.frontend_url}{path}?{urlencode({'token': code, 'email': email})}"

    def send_verification_email(self, email: str, code: str) -> None:
        link = self._link("verify", code, email)
        body = (
            '<p style="color: #555555; font-size: 16px;">Thank you for signing up! '
            "Use the code below or click the button to complete your registration:</p>"
            f'<p style="font-size: 18px; font-weight: bold; text-align: center;">{code}</p>'
            + _BUTTON.format(href=link, label="Verify User")
            + '<p style="color: #555555; font-size: 14px;">If you got this email by mistake, please ignore it.</p>'
        )
        text = f"Your verification code is {code}. Verify your account at {link}"
        self.send(email, VERIFICATION_SUBJECT, _LAYOUT.format(title="Verify Your Email Address", body=body), text)

    def send_password_reset_email(self, email: str, code: str) -> None:
        link = self._link("reset-password", code, email)
        body = (
            f'<p style="color: #555555; font-size: 16px;">It seems you have forgotten your password for '
            f"<strong>{email}</strong>. You can reset it by clicking:</p>"
            + _BUTTON.format(href=link, label="Reset Password")
            + '<p style="color: #555555; font-size: 14px;">If you did not request a change of password, '
            "please ignore this email.</p>"
        )
        text = f"Reset your password at {link}"
        self.send(email, PASSWORD_RESET_SUBJECT, _LAYOUT.format(title="Password Reset", body=body), text)

    def send(self, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> None:
        if not self.is_configured:
            logger.info(
                "SMTP not configured; email to %s not sent (subject=%r): %s",
                redact_email(to_email),
                subject,
                (text_body or html_body)[:200],
            )
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        if text_body:
            msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
            else:
                with smtplib.SMTP_SSL(
                    self.smtp_host, self.smtp_port, context=context, timeout=self.timeout
                ) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Email to %s failed via %s:%s: %s",
                redact_email(to_email),
                self.smtp_host,
                self.smtp_port,
                e,
            )
            raise EmailDeliveryError(str(e)) from e

        logger.info("Email sent to %s (subject=%r)", redact_email(to_email), subject)


email_service = EmailService.from_settings(settings)


def get_email_service() -> EmailService:
    return email_service
