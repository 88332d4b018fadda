"""
Name: Mail Sender Tests

Responsibilities:
  - SMTP sender builds a multipart message with the frontend link
  - STARTTLS / login only when configured
  - SMTP failures surface as MailDeliveryError
  - Fake sender keeps an outbox and can simulate one failure
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from app.crosscutting.exceptions import MailDeliveryError
from app.infrastructure.mail import FakeMailSender, SmtpMailSender

pytestmark = pytest.mark.unit


def _sender(**overrides) -> SmtpMailSender:
    params = dict(
        host="smtp.test",
        port=587,
        sender="no-reply@store.test",
        sender_name="Store Rating",
        frontend_url="http://frontend.test",
        app_name="Store Rating",
    )
    params.update(overrides)
    return SmtpMailSender(**params)


def _text_body(message) -> str:
    # R: MIMEText utf-8 codifica en base64; se decodifica la parte text/plain.
    for part in message.walk():
        if part.get_content_type() == "text/plain":
            return part.get_payload(decode=True).decode("utf-8")
    return ""


@pytest.fixture
def smtp():
    server = MagicMock()
    with patch("app.infrastructure.mail.smtplib.SMTP") as SMTP:
        SMTP.return_value.__enter__.return_value = server
        yield SMTP, server


def test_verification_mail_contains_link(smtp):
    SMTP, server = smtp

    _sender().send_verification_email(to="a@x.com", name="Alice", token="abc")

    SMTP.assert_called_once_with("smtp.test", 587, timeout=10.0)
    server.starttls.assert_called_once()
    server.login.assert_not_called()
    message = server.send_message.call_args.args[0]
    assert message["To"] == "a@x.com"
    assert "Store Rating" in message["From"]
    assert "http://frontend.test/verify-email?token=abc" in _text_body(message)


def test_password_reset_with_credentials_and_no_tls(smtp):
    _, server = smtp

    _sender(username="user", password="secret", use_tls=False).send_password_reset_email(
        to="a@x.com", name="Alice", token="xyz"
    )

    server.starttls.assert_not_called()
    server.login.assert_called_once_with("user", "secret")
    assert "reset-password?token=xyz" in _text_body(server.send_message.call_args.args[0])


def test_smtp_failure_raises_mail_delivery_error(smtp):
    _, server = smtp
    server.send_message.side_effect = smtplib.SMTPException("rejected")

    with pytest.raises(MailDeliveryError):
        _sender().send_verification_email(to="a@x.com", name="Alice", token="abc")


def test_connection_failure_raises_mail_delivery_error():
    with patch("app.infrastructure.mail.smtplib.SMTP", side_effect=OSError("refused")):
        with pytest.raises(MailDeliveryError):
            _sender().send_verification_email(to="a@x.com", name="Alice", token="abc")


def test_fake_sender_outbox():
    mail = FakeMailSender(frontend_url="http://frontend.test")

    mail.send_verification_email(to="a@x.com", name="Alice", token="t1")
    mail.send_password_reset_email(to="a@x.com", name="Alice", token="t2")

    assert mail.last_token("a@x.com") == "t1"
    assert mail.last_token("a@x.com", "password_reset") == "t2"
    assert mail.outbox[0].link == "http://frontend.test/verify-email?token=t1"

    mail.clear()
    assert mail.last_token("a@x.com") is None


def test_fake_sender_fails_once():
    mail = FakeMailSender()
    mail.fail_next = True

    with pytest.raises(MailDeliveryError):
        mail.send_verification_email(to="a@x.com", name="Alice", token="t1")
    mail.send_verification_email(to="a@x.com", name="Alice", token="t2")

    assert [m.token for m in mail.outbox] == ["t2"]
