"""
Email templates

Each template returns an EmailContent (subject, plain text, html). Values
interpolated into html are escaped; links are absolute when a public app URL
is configured.
"""

from html import escape
from typing import Optional

from .models import EmailContent

DEFAULT_BRAND = "PerfectExpress"
PREVIEW_LENGTH = 50


def _label(status: str) -> str:
    return (status or "").replace("_", " ").upper()


def _preview(message: str) -> str:
    message = message or ""
    if len(message) <= PREVIEW_LENGTH:
        return message
    return f"{message[:PREVIEW_LENGTH]}..."


def shipment_confirmation(
    tracking_number: str,
    recipient_name: str,
    link: str,
    brand: str = DEFAULT_BRAND,
) -> EmailContent:
    return EmailContent(
        subject=f"{brand} | Shipment Registered: {tracking_number}",
        text=(
            f"Hello {recipient_name}, your shipment has been registered with tracking number "
            f"{tracking_number}. You can track it on our platform."
        ),
        html=(
            f"<h1>Shipment Registered</h1><p>Hello {escape(recipient_name)},</p>"
            f"<p>Your shipment <strong>{escape(tracking_number)}</strong> has been successfully created. "
            f"View it <a href=\"{escape(link)}\">here</a>.</p>"
        ),
    )


def receiver_shipment_notification(
    tracking_number: str,
    receiver_name: str,
    sender_name: str,
    link: str,
    brand: str = DEFAULT_BRAND,
) -> EmailContent:
    return EmailContent(
        subject=f"{brand} | Incoming Shipment: {tracking_number}",
        text=f"Hello {receiver_name}, {sender_name} has created a shipment to you. Track it with {tracking_number}.",
        html=(
            f"<h1>Incoming Shipment</h1><p>Hello {escape(receiver_name)},</p>"
            f"<p><strong>{escape(sender_name)}</strong> has created a shipment to you.</p>"
            f"<p>Tracking: <strong>{escape(tracking_number)}</strong></p>"
            f"<p>Track it <a href=\"{escape(link)}\">here</a>.</p>"
        ),
    )


def admin_new_shipment_alert(tracking_number: str, user_name: str) -> EmailContent:
    return EmailContent(
        subject=f"ADMIN ALERT | New Shipment Submission: {tracking_number}",
        text=f"User {user_name} has submitted a new shipment for processing. ID: {tracking_number}",
        html=(
            f"<h1>New Shipment Submission</h1><p>User <strong>{escape(user_name)}</strong> "
            f"has created a new manifest.</p><p>Tracking: <strong>{escape(tracking_number)}</strong></p>"
        ),
    )


def status_update(
    tracking_number: str,
    status: str,
    location: Optional[str] = None,
    brand: str = DEFAULT_BRAND,
) -> EmailContent:
    label = _label(status)
    where = f" at {location}" if location else ""
    return EmailContent(
        subject=f"{brand} | Tracking Update: {tracking_number}",
        text=f"Your shipment {tracking_number} has been updated to: {label}{where}.",
        html=(
            f"<h1>Tracking Update</h1><p>The status of your shipment <strong>{escape(tracking_number)}</strong> "
            f"has changed to <strong>{escape(label)}</strong>{escape(where)}.</p>"
        ),
    )


def payment_update(tracking_number: str, paid: bool, brand: str = DEFAULT_BRAND) -> EmailContent:
    if paid:
        text = f"Payment for shipment {tracking_number} has been verified."
    else:
        text = f"Payment for shipment {tracking_number} is marked as unpaid."
    return EmailContent(
        subject=f"{brand} | Payment Update: {tracking_number}",
        text=text,
        html=f"<h1>Payment Update</h1><p>{escape(text)}</p>",
    )


def support_reply(ticket_number: str, message: str, brand: str = DEFAULT_BRAND) -> EmailContent:
    return EmailContent(
        subject=f"{brand} | New Support Message: {ticket_number}",
        text=f"You have a new message regarding ticket {ticket_number}.",
        html=(
            f"<h1>Support Ticket Update</h1><p>A new response has been posted to ticket "
            f"<strong>{escape(ticket_number)}</strong>.</p><p>Preview: \"{escape(_preview(message))}\"</p>"
        ),
    )


def admin_new_ticket_alert(ticket_number: str, customer_name: str, subject: str) -> EmailContent:
    return EmailContent(
        subject=f"ADMIN ALERT | New Support Ticket: {ticket_number}",
        text=f"{customer_name} opened ticket {ticket_number}: {subject}",
        html=(
            f"<h1>New Support Ticket</h1><p><strong>{escape(customer_name)}</strong> opened ticket "
            f"<strong>{escape(ticket_number)}</strong>.</p><p>Subject: {escape(subject)}</p>"
        ),
    )


def ticket_status_update(ticket_number: str, status: str, brand: str = DEFAULT_BRAND) -> EmailContent:
    label = _label(status)
    return EmailContent(
        subject=f"{brand} | Ticket Status Update: {ticket_number}",
        text=f"Ticket {ticket_number} status changed to {label}.",
        html=(
            f"<h1>Ticket Status Update</h1><p>Ticket <strong>{escape(ticket_number)}</strong> "
            f"status changed to <strong>{escape(label)}</strong>.</p>"
        ),
    )
