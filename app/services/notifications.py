from __future__ import annotations

import html
import logging
from typing import Any

from app.core.config import settings
from app.services.email_service import EmailDeliveryError, send_email
from app.services.request_status import ambulance_type_label

_LOG = logging.getLogger("app.notifications")

RECIPIENT_OPERATOR = "OPERATOR"
RECIPIENT_CUSTOMER = "CUSTOMER"

ANY_TIME_LABEL = "Οποιαδήποτε ώρα μέσα στην ημέρα"
CUSTOMER_SUBJECT = "Λάβαμε την αίτησή σας για ασθενοφόρο"

_DIV_STYLE = "font-family: system-ui, -apple-system, 'Segoe UI', sans-serif; font-size:14px; color:#111"
_FOOTNOTE_STYLE = "font-size:12px; color:#666"


def status_url_for_token(token: str | None) -> str | None:
    value = str(token or "").strip()
    if not value:
        return None
    base = str(settings.PUBLIC_BASE_URL or "").strip().rstrip("/")
    return f"{base}/r/{value}"


def time_window_label(time_from: str | None, time_to: str | None) -> str:
    if not time_from and not time_to:
        return ANY_TIME_LABEL
    return f"{time_from or '--:--'} – {time_to or '--:--'}"


def _text(value: Any) -> str:
    raw = str(value or "").strip()
    return html.escape(raw) if raw else "-"


def _multiline(value: Any) -> str:
    raw = str(value or "").strip()
    if not raw:
        return "-"
    return "<br />".join(html.escape(line) for line in raw.splitlines())


def _yes_no(flag: Any) -> str:
    return "Ναι" if flag else "Όχι"


def operator_subject(payload: dict[str, Any]) -> str:
    urgent = " (ΕΠΕΙΓΟΝ)" if payload.get("is_emergency") else ""
    return f"Νέο αίτημα ασθενοφόρου{urgent} – {str(payload.get('date') or '').strip()}".strip()


def _trip_lines(payload: dict[str, Any]) -> str:
    return (
        f"<p><strong>Ημερομηνία μεταφοράς:</strong> {_text(payload.get('date'))}</p>"
        f"<p><strong>Ώρα παραλαβής:</strong> {html.escape(time_window_label(payload.get('time_from'), payload.get('time_to')))}</p>"
        f"<p><strong>Είδος ασθενοφόρου:</strong> {html.escape(ambulance_type_label(payload.get('ambulance_type')))}</p>"
        f"<p><strong>Επείγον:</strong> {_yes_no(payload.get('is_emergency'))}</p>"
        f"<p><strong>Από:</strong><br />{_multiline(payload.get('pickup_text'))}</p>"
        f"<p><strong>Προς:</strong><br />{_multiline(payload.get('dest_text'))}</p>"
    )


def render_operator_email(payload: dict[str, Any]) -> str:
    urgent = " (ΕΠΕΙΓΟΝ)" if payload.get("is_emergency") else ""
    status_url = status_url_for_token(payload.get("public_token"))
    link = f'<p><strong>Σύνδεσμος αιτήματος:</strong> <a href="{html.escape(status_url)}">{html.escape(status_url)}</a></p>' if status_url else ""
    return (
        f'<div style="{_DIV_STYLE}">'
        f"<h2>Νέο αίτημα ασθενοφόρου{urgent}</h2>"
        f"<p><strong>ID αιτήματος:</strong> {_text(payload.get('request_id'))}</p>"
        f"{_trip_lines(payload)}"
        '<hr style="margin:16px 0; border:none; border-top:1px solid #eee;" />'
        "<p><strong>Στοιχεία πελάτη</strong></p>"
        f"<p><strong>Ονοματεπώνυμο:</strong> {_text(payload.get('full_name'))}</p>"
        f"<p><strong>Email:</strong> {_text(payload.get('email'))}</p>"
        f"<p><strong>Κινητό:</strong> {_text(payload.get('phone'))}</p>"
        f"<p><strong>Σχόλια πελάτη:</strong><br />{_multiline(payload.get('comments'))}</p>"
        f"{link}"
        f'<p style="{_FOOTNOTE_STYLE}">Το μήνυμα δημιουργήθηκε αυτόματα από την πλατφόρμα Ambugo.</p>'
        "</div>"
    )


def render_customer_email(payload: dict[str, Any]) -> str:
    status_url = status_url_for_token(payload.get("public_token"))
    link = (
        f'<p>Μπορείτε να παρακολουθείτε την κατάσταση του αιτήματος εδώ: <a href="{html.escape(status_url)}">{html.escape(status_url)}</a></p>'
        if status_url
        else ""
    )
    return (
        f'<div style="{_DIV_STYLE}">'
        "<h2>Επιβεβαίωση αίτησης ασθενοφόρου</h2>"
        f"<p>Αγαπητέ/ή {html.escape(str(payload.get('full_name') or '').strip() or 'πελάτη')},</p>"
        "<p>Λάβαμε την αίτησή σας για ασθενοφόρο. Σύντομα θα λάβετε προσφορές από συνεργαζόμενες εταιρείες.</p>"
        f"{_trip_lines(payload)}"
        f"<p><strong>Σχόλια που δώσατε:</strong><br />{_multiline(payload.get('comments'))}</p>"
        f"{link}"
        f'<p style="margin-top:16px; {_FOOTNOTE_STYLE}">'
        "Το email είναι ενημερωτικό, μην το απαντήσετε. Αν υπάρχει κάτι επείγον, επικοινωνήστε απευθείας με το 166/112."
        "</p>"
        "</div>"
    )


def operator_recipients() -> list[str]:
    recipients = settings.ambulance_recipients_list
    if recipients:
        return recipients
    fallback = str(settings.REQUESTS_FROM_EMAIL or "").strip()
    return [fallback] if fallback else []


def notification_payload(row: Any) -> dict[str, Any]:
    return {
        "request_id": str(row.id),
        "pickup_text": row.pickup_text,
        "dest_text": row.dest_text,
        "date": row.date,
        "time_from": row.time_from,
        "time_to": row.time_to,
        "ambulance_type": row.ambulance_type,
        "is_emergency": bool(row.is_emergency),
        "email": row.email,
        "full_name": row.full_name,
        "phone": row.phone,
        "comments": row.comments,
        "public_token": row.public_token,
    }


def _attempt(recipient: str, **kwargs: Any) -> dict[str, Any]:
    try:
        result = send_email(**kwargs)
    except EmailDeliveryError as exc:
        _LOG.error("notification to %s failed: %s", recipient, exc)
        return {"recipient": recipient, "attempted": True, "sent": False, "error": str(exc)}
    except Exception as exc:
        _LOG.exception("notification to %s failed unexpectedly", recipient)
        return {"recipient": recipient, "attempted": True, "sent": False, "error": str(exc)}
    return {"recipient": recipient, "attempted": True, "sent": bool(result.get("sent")), "provider": result.get("provider")}


def dispatch_new_request_notifications(payload: dict[str, Any]) -> dict[str, Any]:
    """Send the operator alert and the customer confirmation.

    Each delivery fails independently and is only logged; the caller never
    sees an exception from here.
    """
    results: dict[str, Any] = {}
    customer_email = str(payload.get("email") or "").strip() or None

    to_operators = operator_recipients()
    if to_operators:
        results[RECIPIENT_OPERATOR] = _attempt(
            RECIPIENT_OPERATOR,
            to=to_operators,
            subject=operator_subject(payload),
            html=render_operator_email(payload),
            reply_to=customer_email,
        )
    else:
        _LOG.error("no operator recipients configured; request %s not announced", payload.get("request_id"))
        results[RECIPIENT_OPERATOR] = {"recipient": RECIPIENT_OPERATOR, "attempted": False, "sent": False}

    if customer_email:
        results[RECIPIENT_CUSTOMER] = _attempt(
            RECIPIENT_CUSTOMER,
            to=[customer_email],
            subject=CUSTOMER_SUBJECT,
            html=render_customer_email(payload),
        )
    return results
