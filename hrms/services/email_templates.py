from __future__ import annotations

from html import escape
from typing import Optional

from hrms.core.settings import settings


def _join_text(*parts: Optional[str]) -> str:
    return "\n".join([part for part in parts if part])


def _leave_quantity(context: dict) -> str:
    hours = context.get("hours")
    minutes = context.get("minutes")
    if hours or minutes:
        return f"{hours or 0}h {minutes or 0}m"
    days = context.get("days") or 0
    return f"{days:g} day(s)"


def build_email_content(template: str, context: dict) -> dict:
    """Render subject/html/text for an outbound email template."""
    base_url = settings.app_base_url.rstrip("/")

    if template == "leave_requested":
        employee = escape(context.get("employee_name") or "An employee")
        leave_type = escape(context.get("leave_type") or "Leave")
        period = f"{context.get('start_date')} to {context.get('end_date')}"
        quantity = _leave_quantity(context)
        link = f"{base_url}/hr/leaves"
        subject = f"Leave request from {employee}"
        html = (
            f"<p><strong>{employee}</strong> requested {leave_type} ({quantity}).</p>"
            f"<p>Period: {period}</p>"
            f"<p>Reason: {escape(context.get('reason') or '')}</p>"
            f"<p><a href=\"{link}\">Review the request</a></p>"
        )
        text = _join_text(
            f"{employee} requested {leave_type} ({quantity}).",
            f"Period: {period}",
            f"Reason: {context.get('reason') or ''}",
            f"Review: {link}",
        )
        return {"subject": subject, "html": html, "text": text}

    if template in {"leave_approved", "leave_rejected"}:
        approved = template == "leave_approved"
        verdict = "approved" if approved else "rejected"
        leave_type = escape(context.get("leave_type") or "Leave")
        period = f"{context.get('start_date')} to {context.get('end_date')}"
        link = f"{base_url}/employee/leaves"
        subject = f"Your leave request was {verdict}"
        reason_line = None if approved else f"Reason: {context.get('rejection_reason') or 'Not specified'}"
        html = (
            f"<p>Your {leave_type} request for {period} was <strong>{verdict}</strong>.</p>"
            + (f"<p>{escape(reason_line)}</p>" if reason_line else "")
            + f"<p><a href=\"{link}\">View your leaves</a></p>"
        )
        text = _join_text(f"Your {leave_type} request for {period} was {verdict}.", reason_line, f"Portal: {link}")
        return {"subject": subject, "html": html, "text": text}

    if template == "verify_email":
        link = f"{base_url}/verify?token={context.get('token')}"
        subject = "Verify your email address"
        html = (
            f"<p>Hi {escape(context.get('name') or '')},</p>"
            f"<p>Please confirm your email address to finish signing up.</p>"
            f"<p><a href=\"{link}\">Verify email</a></p>"
        )
        text = _join_text("Please confirm your email address to finish signing up.", f"Verify: {link}")
        return {"subject": subject, "html": html, "text": text}

    if template == "password_reset":
        link = f"{base_url}/reset-password?token={context.get('token')}"
        subject = "Reset your password"
        html = (
            "<p>We received a request to reset your password.</p>"
            f"<p><a href=\"{link}\">Choose a new password</a></p>"
            "<p>If you did not request this, you can ignore this email.</p>"
        )
        text = _join_text("We received a request to reset your password.", f"Reset: {link}")
        return {"subject": subject, "html": html, "text": text}

    if template == "account_approved":
        link = f"{base_url}/login"
        emp_id = context.get("emp_id")
        subject = "Your account has been approved"
        html = (
            "<p>Your HRMS account has been approved.</p>"
            + (f"<p>Employee ID: {escape(emp_id)}</p>" if emp_id else "")
            + f"<p><a href=\"{link}\">Sign in</a></p>"
        )
        text = _join_text("Your HRMS account has been approved.", f"Employee ID: {emp_id}" if emp_id else None, link)
        return {"subject": subject, "html": html, "text": text}

    raise ValueError(f"Unknown email template: {template}")
