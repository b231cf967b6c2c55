"""
Outbound email over an HTTP mail API.

When MAIL_API_URL is not configured the message is logged instead of sent, so
local development and tests never need a mail provider.
"""
from __future__ import annotations

import logging
from typing import Any

import requests
from markupsafe import escape

from config import Config


log = logging.getLogger("notifications")


def onboarding_url(base_url: str, token: str) -> str:
    return f"{str(base_url or '').rstrip('/')}/onboarding?token={token}"


def build_onboarding_email(candidate_name: str, organization_name: str, token: str, base_url: str) -> dict[str, str]:
    url = onboarding_url(base_url, token)
    company = organization_name or "our team"
    name = candidate_name or "there"

    subject = f"Welcome to {company} - Complete Your Onboarding"
    html_company, html_name, html_url = escape(company), escape(name), escape(url)
    text = (
        f"Welcome to {company}!\n\n"
        f"Hi {name},\n\n"
        "Please complete your onboarding process using the secure link below.\n\n"
        f"Onboarding Link: {url}\n\n"
        "This link is personal and expires automatically. "
        "If you have any questions, please contact your manager or HR.\n"
    )
    html = (
        "<!DOCTYPE html><html><head><meta charset=\"UTF-8\">"
        f"<title>Welcome to {html_company}</title></head>"
        "<body style=\"font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto;\">"
        f"<h1>Welcome to {html_company}!</h1>"
        f"<p>Hi {html_name},</p>"
        "<p>Please complete your onboarding process by clicking the button below.</p>"
        f"<p><a href=\"{html_url}\">Start My Onboarding</a></p>"
        f"<p style=\"font-size: 12px; color: #666;\">If the button doesn't work, copy and paste this link: {html_url}</p>"
        "</body></html>"
    )
    return {"subject": subject, "text": text, "html": html, "url": url}


def send_email(cfg: Config, *, to_email: str, subject: str, text: str, html: str = "") -> dict[str, Any]:
    if not cfg.MAIL_API_URL:
        log.info("mail mock to=%s subject=%s", to_email, subject)
        return {"delivered": False, "mock": True}

    headers = {"Content-Type": "application/json"}
    if cfg.MAIL_API_KEY:
        headers["Authorization"] = f"Bearer {cfg.MAIL_API_KEY}"

    payload = {"from": cfg.MAIL_FROM, "to": [to_email], "subject": subject, "text": text, "html": html}
    resp = requests.post(cfg.MAIL_API_URL, json=payload, headers=headers, timeout=cfg.MAIL_TIMEOUT_SECONDS)
    resp.raise_for_status()
    log.info("mail sent to=%s subject=%s status=%s", to_email, subject, resp.status_code)
    return {"delivered": True, "mock": False}


def send_onboarding_email(
    cfg: Config,
    to_email: str,
    candidate_name: str,
    organization_name: str,
    token: str,
    base_url: str,
) -> dict[str, Any]:
    msg = build_onboarding_email(candidate_name, organization_name, token, base_url)
    return send_email(cfg, to_email=to_email, subject=msg["subject"], text=msg["text"], html=msg["html"])
