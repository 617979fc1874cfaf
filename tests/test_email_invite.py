import smtplib
from datetime import datetime
from unittest.mock import MagicMock

from groupplan.services.trips import email_invite
from groupplan.services.trips.email_invite import SmtpEmailSender, generate_signup_link


def test_signup_link_points_back_to_trip():
    link = generate_signup_link(12)

    assert link.endswith("/auth/signup?redirect=%2Ftrips%2F12&invitation=true")


def test_message_mentions_trip_inviter_and_expiry():
    sender = SmtpEmailSender(host="smtp.test", user="noreply@test")

    message = sender.build_invitation_message(
        "guest@example.com", "Spring Break", "Olivia", 12, datetime(2026, 3, 1, 9, 0)
    )

    assert message["To"] == "guest@example.com"
    assert "Olivia" in message["Subject"]
    assert "Spring Break" in message["Subject"]
    body = message.get_payload()[0].get_payload()
    assert "March 01, 2026" in body


async def test_unconfigured_sender_does_not_connect(monkeypatch):
    smtp = MagicMock()
    monkeypatch.setattr(email_invite.smtplib, "SMTP_SSL", smtp)

    result = await SmtpEmailSender(host=None, user=None).send_invitation_email("a@b.c", "Trip", "Olivia", 1)

    assert result.success is False
    smtp.assert_not_called()


async def test_delivery_uses_ssl_login(monkeypatch):
    smtp = MagicMock()
    monkeypatch.setattr(email_invite.smtplib, "SMTP_SSL", smtp)
    sender = SmtpEmailSender(host="smtp.test", port=465, user="noreply@test", password="pw")

    result = await sender.send_invitation_email("guest@example.com", "Trip", "Olivia", 1)

    assert result.success is True
    smtp.assert_called_once_with("smtp.test", 465)
    server = smtp.return_value.__enter__.return_value
    server.login.assert_called_once_with("noreply@test", "pw")
    server.sendmail.assert_called_once()


async def test_smtp_failure_is_returned_not_raised(monkeypatch):
    smtp = MagicMock(side_effect=smtplib.SMTPConnectError(421, "busy"))
    monkeypatch.setattr(email_invite.smtplib, "SMTP_SSL", smtp)
    sender = SmtpEmailSender(host="smtp.test", user="noreply@test", password="pw")

    result = await sender.send_invitation_email("guest@example.com", "Trip", "Olivia", 1)

    assert result.success is False
    assert "busy" in result.error


def test_html_part_escapes_trip_title_and_inviter():
    sender = SmtpEmailSender(host="smtp.test", user="noreply@test")

    message = sender.build_invitation_message(
        "guest@example.com", "<b>Trip & Co</b>", "<script>alert(1)</script>", 12
    )

    body = message.get_payload()[1].get_payload(decode=True).decode()
    assert "&lt;b&gt;Trip &amp; Co&lt;/b&gt;" in body
    assert "&lt;script&gt;" in body
    assert "<script>" not in body


async def test_unexpected_send_error_is_returned_not_raised(monkeypatch):
    smtp = MagicMock(side_effect=UnicodeEncodeError("ascii", "é", 0, 1, "ordinal not in range"))
    monkeypatch.setattr(email_invite.smtplib, "SMTP_SSL", smtp)
    sender = SmtpEmailSender(host="smtp.test", user="noreply@test", password="pw")

    result = await sender.send_invitation_email("guest@example.com", "Trip", "Olivia", 1)

    assert result.success is False
    assert result.error
