"""
Outbound email through Resend: usage-limit notices and daily lead alerts.
Without RESEND_API_KEY nothing is sent.
"""
import html
import logging
import os
from datetime import datetime
from typing import List, Optional

import resend

from app.core.exceptions import UpstreamUnavailable
from app.schemas.leads import Lead

logger = logging.getLogger(__name__)

RESEND_API_KEY = os.getenv("RESEND_API_KEY", "").strip()
FROM_EMAIL = os.getenv("ALERTS_FROM_EMAIL", "Deal Genie <alerts@dealgenieos.com>")
APP_NAME = os.getenv("APP_NAME", "Deal Genie")
APP_URL = os.getenv("APP_URL", "https://dealgenieos.com").rstrip("/")

FEATURE_DISPLAY_NAMES = {
    "analyze": "deal analysis",
    "offer": "offer generation",
    "csv_import": "CSV import",
    "lead_search": "lead search",
}


def _deliver(to_email: str, subject: str, html_body: str) -> None:
    """Send one email. Raises UpstreamUnavailable if Resend is unset or rejects it."""
    if not RESEND_API_KEY:
        raise UpstreamUnavailable("resend", "RESEND_API_KEY is not configured")
    resend.api_key = RESEND_API_KEY
    params = {
        "from": FROM_EMAIL,
        "to": [to_email],
        "subject": subject,
        "html": html_body.strip(),
    }
    try:
        resend.Emails.send(params)
    except Exception as e:
        raise UpstreamUnavailable("resend", f"Failed to send email: {e}") from e


def send_email(to_email: str, subject: str, html_body: str) -> bool:
    """
    Best-effort send. Returns True if Resend accepted the message, False otherwise.
    Never raises so the caller's request is not broken by email problems.
    """
    if not to_email:
        return False
    try:
        _deliver(to_email, subject, html_body)
    except UpstreamUnavailable as e:
        logger.warning("Email to %s not sent: %s", to_email, e.detail.get("message"))
        return False
    logger.info("Email sent to %s: %s", to_email, subject)
    return True


def render_usage_notice(feature: str, current_usage: int, limit: int, reached: bool) -> tuple[str, str]:
    feature_name = FEATURE_DISPLAY_NAMES.get(feature, feature)
    if reached:
        subject = f"You've reached your {feature_name} limit"
        lead_in = f"You've used all {limit} of your monthly {feature_name} credits in {APP_NAME}."
    else:
        remaining = max(limit - current_usage, 0)
        subject = f"You're approaching your {feature_name} limit"
        lead_in = f"You have only {remaining} {feature_name} credits remaining this month in {APP_NAME}."
    body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #4F46E5;">{'Usage Limit Reached' if reached else 'Almost at Usage Limit'}</h2>
      <p>Hi there,</p>
      <p>{lead_in}</p>
      <p>With a Pro subscription you get unlimited {feature_name}, deal analyses and offer generation.</p>
      <p style="margin: 25px 0;">
        <a href="{APP_URL}/pricing" style="background-color: #4F46E5; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">Upgrade to Pro</a>
      </p>
      <p>Thank you for using {APP_NAME}!</p>
    </div>
    """
    return subject, body


def _format_price(price: Optional[int]) -> str:
    return f"${price:,}" if price is not None else "Price n/a"


def _format_date(value: Optional[datetime]) -> str:
    return value.strftime("%B %d, %Y") if value else ""


def render_lead_alert(search_name: str, leads: List[Lead], search_id: int) -> tuple[str, str]:
    cards = []
    for lead in leads:
        description = lead.description or ""
        if len(description) > 150:
            description = description[:150] + "..."
        link = (
            f'<a href="{html.escape(lead.listing_url)}" style="color: #3b82f6;">View Property</a>'
            if lead.listing_url else ""
        )
        cards.append(f"""
        <div style="margin-bottom: 20px; border: 1px solid #e2e8f0; border-radius: 8px; padding: 15px;">
          <div style="font-weight: bold; font-size: 16px;">{html.escape(lead.address)}</div>
          <div style="font-size: 18px; color: #10b981;">{_format_price(lead.price)}</div>
          <div style="color: #4b5563;">Listed: {_format_date(lead.date_listed)} &middot; Source: {html.escape(lead.source)}</div>
          <div style="color: #4b5563;">{html.escape(description)}</div>
          {link}
        </div>""")

    subject = f'{len(leads)} New Properties Found - "{search_name}"'
    body = f"""
    <div style="max-width: 600px; margin: 0 auto; font-family: system-ui, sans-serif; color: #374151;">
      <h1 style="font-size: 24px; color: #111827;">New Property Leads</h1>
      <p>We found {len(leads)} new properties matching your "{html.escape(search_name)}" search:</p>
      {''.join(cards)}
      <p style="margin-top: 30px; font-size: 14px; color: #6b7280;">
        <a href="{APP_URL}/lead-genie/saved-searches">Manage your saved searches</a> |
        <a href="{APP_URL}/lead-genie/saved-searches/{search_id}">View all leads for this search</a>
      </p>
    </div>
    """
    return subject, body


def send_lead_alert(to_email: str, search_name: str, leads: List[Lead], search_id: int) -> None:
    """Email new leads for a saved search. Raises UpstreamUnavailable if it cannot be sent."""
    if not to_email or not leads:
        raise ValueError("A recipient and at least one lead are required")
    subject, body = render_lead_alert(search_name, leads, search_id)
    _deliver(to_email, subject, body)
    logger.info("Lead alert sent to %s for search %s (%s leads)", to_email, search_id, len(leads))
