from __future__ import annotations

import logging
import re
import smtplib
from email.message import EmailMessage
from typing import Any
import httpx

from app.core.config import settings


class EmailDeliveryError(Exception):
    pass


logger = logging.getLogger("uvicorn.error")

_TAG_RE = re.compile(r"<[^>]+>")


def _normalize_email(value: str | None) -> str:
    return str(value or "").strip()


def _normalize_recipients(to: list[str] | str) -> list[str]:
    items = [to] if isinstance(to, str) else list(to or [])
    return [_normalize_email(item) for item in items if _normalize_email(item)]


def _html_to_text(html: str) -> str:
    text = str(html or "").replace("<br />", "\n").replace("<br/>", "\n").replace("</p>", "\n")
    lines = [line.strip() for line in _TAG_RE.sub("", text).splitlines()]
    return "\n".join(line for line in lines if line)


def _mock_send(*, to: list[str], subject: str, reply_to: str | None) -> dict[str, Any]:
    logger.warning("[EMAIL MOCK] to=%s subject=%s reply_to=%s", ",".join(to), subject, reply_to or "-")
    return {
        "provider": "mock_email",
        "status": "accepted",
        "message": "Email provider response mocked",
        "sent": False,
        "mocked": True,
    }


def _send_via_resend(*, to: list[str], subject: str, html: str, reply_to: str | None) -> dict[str, Any]:
    api_key = str(settings.RESEND_API_KEY or "").strip()
    sender = str(settings.REQUESTS_FROM_EMAIL or "").strip()
    if not api_key:
        raise EmailDeliveryError("RESEND_API_KEY is not configured")
    if not sender:
        raise EmailDeliveryError("REQUESTS_FROM_EMAIL is not configured")
    body: dict[str, Any] = {"from": sender, "to": to, "subject": subject, "html": html}
    if reply_to:
        body["reply_to"] = reply_to
    try:
        with httpx.Client(timeout=15.0) as client:
            response = client.post(
                settings.RESEND_API_URL,
                headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
                json=body,
            )
    except Exception as exc:
        raise EmailDeliveryError(f"Resend request failed: {exc}") from exc
    payload: dict[str, Any] = {}
    try:
        payload = response.json() if response.content else {}
    except Exception:
        payload = {}
    if response.status_code >= 400:
        detail = str(payload.get("message") or payload.get("error") or response.text or response.status_code)
        raise EmailDeliveryError(f"Resend error: {detail}")
    return {
        "provider": "resend",
        "status": "accepted",
        "message": "Email sent",
        "sent": True,
        "response": payload,
    }


def _send_smtp(*, to: list[str], subject: str, html: str, reply_to: str | None) -> dict[str, Any]:
    host = str(settings.SMTP_HOST or "").strip()
    port = int(settings.SMTP_PORT or 0)
    username = str(settings.SMTP_USER or "").strip()
    password = str(settings.SMTP_PASSWORD or "").strip()
    sender = str(settings.REQUESTS_FROM_EMAIL or "").strip()
    use_tls = bool(getattr(settings, "SMTP_USE_TLS", True))
    use_ssl = bool(getattr(settings, "SMTP_USE_SSL", False))

    if not host or not port or not sender:
        raise EmailDeliveryError("SMTP_HOST/SMTP_PORT/REQUESTS_FROM_EMAIL are not configured")
    if use_tls and use_ssl:
        raise EmailDeliveryError("SMTP_USE_TLS and SMTP_USE_SSL cannot both be enabled")

    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = ", ".join(to)
    msg["Subject"] = subject
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.set_content(_html_to_text(html))
    msg.add_alternative(html, subtype="html")

    try:
        if use_ssl:
            smtp = smtplib.SMTP_SSL(host=host, port=port, timeout=15)
        else:
            smtp = smtplib.SMTP(host=host, port=port, timeout=15)
        with smtp as client:
            client.ehlo()
            if use_tls:
                client.starttls()
                client.ehlo()
            if username:
                client.login(username, password)
            client.send_message(msg)
    except Exception as exc:
        raise EmailDeliveryError(f"SMTP delivery failed: {exc}") from exc

    return {
        "provider": "smtp",
        "status": "accepted",
        "message": "Email sent",
        "sent": True,
    }


def send_email(*, to: list[str] | str, subject: str, html: str, reply_to: str | None = None) -> dict[str, Any]:
    recipients = _normalize_recipients(to)
    if not recipients:
        raise EmailDeliveryError("No recipients")
    reply = _normalize_email(reply_to) or None

    provider = str(settings.EMAIL_PROVIDER or "dummy").strip().lower()
    if provider in {"", "dummy", "mock", "console"}:
        return _mock_send(to=recipients, subject=subject, reply_to=reply)

    if provider == "resend":
        return _send_via_resend(to=recipients, subject=subject, html=html, reply_to=reply)

    if provider == "smtp":
        return _send_smtp(to=recipients, subject=subject, html=html, reply_to=reply)

    raise EmailDeliveryError(f"Unknown EMAIL_PROVIDER: {provider}")


def email_provider_health() -> dict[str, Any]:
    provider = str(settings.EMAIL_PROVIDER or "dummy").strip().lower()
    recipients_configured = bool(settings.ambulance_recipients_list)

    if provider in {"", "dummy", "mock", "console"}:
        return {
            "provider": "dummy",
            "status": "ok",
            "mode": "mock",
            "can_send": True,
            "checks": {"mock_mode": True, "recipients_configured": recipients_configured},
            "issues": [],
        }

    if provider == "resend":
        checks = {
            "resend_api_key_configured": bool(str(settings.RESEND_API_KEY or "").strip()),
            "from_configured": bool(str(settings.REQUESTS_FROM_EMAIL or "").strip()),
        }
        issues: list[str] = []
        if not checks["resend_api_key_configured"]:
            issues.append("RESEND_API_KEY is not configured")
        if not checks["from_configured"]:
            issues.append("REQUESTS_FROM_EMAIL is not configured")
        if not recipients_configured:
            issues.append("AMBULANCE_RECIPIENTS is empty; operator mail goes to REQUESTS_FROM_EMAIL")
        return {
            "provider": "resend",
            "status": "ok" if all(checks.values()) else "degraded",
            "mode": "real",
            "can_send": all(checks.values()),
            "checks": {**checks, "recipients_configured": recipients_configured},
            "issues": issues,
        }

    if provider == "smtp":
        host = str(settings.SMTP_HOST or "").strip()
        sender = str(settings.REQUESTS_FROM_EMAIL or "").strip()
        checks = {"smtp_host_configured": bool(host), "from_configured": bool(sender)}
        issues = []
        if not checks["smtp_host_configured"]:
            issues.append("SMTP_HOST is not configured")
        if not checks["from_configured"]:
            issues.append("REQUESTS_FROM_EMAIL is not configured")
        return {
            "provider": "smtp",
            "status": "ok" if all(checks.values()) else "degraded",
            "mode": "real",
            "can_send": all(checks.values()),
            "checks": {**checks, "recipients_configured": recipients_configured},
            "issues": issues,
        }

    return {
        "provider": provider,
        "status": "error",
        "mode": "unknown",
        "can_send": False,
        "checks": {"provider_supported": False},
        "issues": [f"Unknown EMAIL_PROVIDER: {provider}"],
    }
