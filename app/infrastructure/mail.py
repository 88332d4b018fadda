"""
Name: Mail Senders (SMTP adapter + Fake outbox)

Qué es
------
Implementaciones de `domain.services.MailSender` para los mails
transaccionales de identidad: verificación de email y reseteo de password.

CRC (Class-Responsibility-Collaboration)
----------------------------------------
Class: SmtpMailSender
Responsibilities:
  - Construir mensajes multipart (texto + HTML) con el link al frontend
  - Entregar vía SMTP (STARTTLS + login opcional)
  - Traducir fallas SMTP a MailDeliveryError (el registro hace rollback)
Collaborators:
  - smtplib / email.mime
  - crosscutting.config (host, puerto, remitente, frontend_url)

Class: FakeMailSender
Responsibilities:
  - Guardar mails en un outbox en memoria (tests / FAKE_MAIL=1)
  - Exponer el último token enviado por destinatario
Constraints:
  - Sin IO; determinista
"""

from __future__ import annotations

import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from threading import Lock

from ..crosscutting.exceptions import MailDeliveryError
from ..crosscutting.logger import logger

VERIFY_EMAIL_PATH = "/verify-email"
RESET_PASSWORD_PATH = "/reset-password"


@dataclass(frozen=True, slots=True)
class OutgoingMail:
    to: str
    subject: str
    text: str
    html: str
    kind: str
    token: str
    link: str


def _verification_mail(
    *, to: str, name: str, token: str, frontend_url: str, app_name: str
) -> OutgoingMail:
    link = f"{frontend_url}{VERIFY_EMAIL_PATH}?token={token}"
    return OutgoingMail(
        to=to,
        subject=f"Verify your email for {app_name}",
        text=(
            f"Hi {name},\n\nPlease verify your email address by opening:\n{link}\n\n"
            "This link expires in 24 hours."
        ),
        html=(
            f"<p>Hi {name},</p><p>Please verify your email address:</p>"
            f'<p><a href="{link}">Verify email</a></p>'
            "<p>This link expires in 24 hours.</p>"
        ),
        kind="email_verification",
        token=token,
        link=link,
    )


def _password_reset_mail(
    *, to: str, name: str, token: str, frontend_url: str, app_name: str
) -> OutgoingMail:
    link = f"{frontend_url}{RESET_PASSWORD_PATH}?token={token}"
    return OutgoingMail(
        to=to,
        subject=f"Reset your {app_name} password",
        text=(
            f"Hi {name},\n\nYou requested a password reset. Open:\n{link}\n\n"
            "This link expires in 1 hour. If you did not request it, ignore this email."
        ),
        html=(
            f"<p>Hi {name},</p><p>You requested a password reset.</p>"
            f'<p><a href="{link}">Reset password</a></p>'
            "<p>This link expires in 1 hour.</p>"
        ),
        kind="password_reset",
        token=token,
        link=link,
    )


class SmtpMailSender:
    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        sender_name: str,
        frontend_url: str,
        app_name: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._sender_name = sender_name
        self._frontend_url = frontend_url
        self._app_name = app_name
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout_seconds

    def _deliver(self, mail: OutgoingMail) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = mail.subject
        msg["From"] = formataddr((self._sender_name, self._sender))
        msg["To"] = mail.to
        msg.attach(MIMEText(mail.text, "plain", "utf-8"))
        msg.attach(MIMEText(mail.html, "html", "utf-8"))

        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                if self._use_tls:
                    server.starttls()
                if self._username and self._password:
                    server.login(self._username, self._password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "Envío de mail falló",
                extra={"mail_kind": mail.kind, "error": str(exc)},
            )
            raise MailDeliveryError("Could not send email", original_error=exc) from exc

        logger.info("Mail enviado", extra={"mail_kind": mail.kind})

    def send_verification_email(self, *, to: str, name: str, token: str) -> None:
        self._deliver(
            _verification_mail(
                to=to,
                name=name,
                token=token,
                frontend_url=self._frontend_url,
                app_name=self._app_name,
            )
        )

    def send_password_reset_email(self, *, to: str, name: str, token: str) -> None:
        self._deliver(
            _password_reset_mail(
                to=to,
                name=name,
                token=token,
                frontend_url=self._frontend_url,
                app_name=self._app_name,
            )
        )


class FakeMailSender:
    """Outbox en memoria; `fail_next` simula una falla de entrega."""

    def __init__(
        self, *, frontend_url: str = "http://localhost:3000", app_name: str = "App"
    ) -> None:
        self._frontend_url = frontend_url
        self._app_name = app_name
        self._lock = Lock()
        self.outbox: list[OutgoingMail] = []
        self.fail_next = False

    def _deliver(self, mail: OutgoingMail) -> None:
        with self._lock:
            if self.fail_next:
                self.fail_next = False
                raise MailDeliveryError("Could not send email")
            self.outbox.append(mail)
        logger.info("Mail encolado (fake)", extra={"mail_kind": mail.kind})

    def send_verification_email(self, *, to: str, name: str, token: str) -> None:
        self._deliver(
            _verification_mail(
                to=to,
                name=name,
                token=token,
                frontend_url=self._frontend_url,
                app_name=self._app_name,
            )
        )

    def send_password_reset_email(self, *, to: str, name: str, token: str) -> None:
        self._deliver(
            _password_reset_mail(
                to=to,
                name=name,
                token=token,
                frontend_url=self._frontend_url,
                app_name=self._app_name,
            )
        )

    def last_token(self, to: str, kind: str = "email_verification") -> str | None:
        with self._lock:
            for mail in reversed(self.outbox):
                if mail.to == to and mail.kind == kind:
                    return mail.token
        return None

    def clear(self) -> None:
        with self._lock:
            self.outbox.clear()
