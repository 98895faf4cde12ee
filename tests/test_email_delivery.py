from __future__ import annotations

from hrms.services import email_delivery
from hrms.services.email import EmailSendError, EmailSendResult
from hrms.services.email_templates import build_email_content


def test_disabled_provider_skips_sending(monkeypatch):
    monkeypatch.setattr(email_delivery.settings, "email_provider", "disabled")

    def fail(**kwargs):
        raise AssertionError("send_email should not be called")

    monkeypatch.setattr(email_delivery, "send_email", fail)
    assert email_delivery.deliver_email("leave_approved", ["a@example.com"], {}) == 0


def test_failures_are_logged_and_do_not_stop_other_recipients(monkeypatch, caplog):
    monkeypatch.setattr(email_delivery.settings, "email_provider", "resend")
    sent_to = []

    def fake_send(*, to_address, subject, html, text=None):
        if to_address == "broken@example.com":
            raise EmailSendError("Resend error: 422")
        sent_to.append(to_address)
        return EmailSendResult(provider="resend", message_id="msg-1")

    monkeypatch.setattr(email_delivery, "send_email", fake_send)
    delivered = email_delivery.deliver_email(
        "leave_requested",
        ["hr@example.com", "broken@example.com", "", "admin@example.com"],
        {"employee_name": "Asha Rao", "leave_type": "Casual Leave", "days": 2},
    )

    assert delivered == 2
    assert sent_to == ["hr@example.com", "admin@example.com"]
    assert "broken@example.com failed" in caplog.text


def test_leave_templates_render_quantity_and_reason():
    requested = build_email_content(
        "leave_requested",
        {"employee_name": "Asha <Rao>", "leave_type": "Short Day Leave", "hours": 2, "minutes": 30},
    )
    assert "Asha &lt;Rao&gt;" in requested["html"]
    assert "2h 30m" in requested["text"]

    rejected = build_email_content("leave_rejected", {"leave_type": "Casual Leave", "rejection_reason": "Audit week"})
    assert rejected["subject"] == "Your leave request was rejected"
    assert "Reason: Audit week" in rejected["text"]
