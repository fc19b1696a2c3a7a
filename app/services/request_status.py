from __future__ import annotations

from typing import Any

STATUS_PENDING = "pending"
STATUS_OFFERED = "offered"
STATUS_BOOKED = "booked"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

STATUSES = (
    STATUS_PENDING,
    STATUS_OFFERED,
    STATUS_BOOKED,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_CANCELLED})

ADMIN_STATUS_LABELS = {
    STATUS_PENDING: "Σε αναμονή",
    STATUS_OFFERED: "Στάλθηκαν προσφορές",
    STATUS_BOOKED: "Έγινε κράτηση",
    STATUS_COMPLETED: "Ολοκληρώθηκε",
    STATUS_CANCELLED: "Ακυρώθηκε",
}

PUBLIC_STATUS_LABELS = {
    STATUS_PENDING: "Σε αναμονή για προσφορές",
    STATUS_OFFERED: "Υπάρχουν διαθέσιμες προσφορές",
    STATUS_BOOKED: "Έχει γίνει κράτηση",
    STATUS_COMPLETED: "Η μεταφορά ολοκληρώθηκε",
    STATUS_CANCELLED: "Το αίτημα ακυρώθηκε",
}

AMBULANCE_TYPES = ("basic", "doctor", "icu", "unknown")

AMBULANCE_TYPE_LABELS = {
    "basic": "Απλό ασθενοφόρο",
    "doctor": "Με συνοδεία ιατρού",
    "icu": "Μονάδα εντατικής θεραπείας (ΜΕΘ)",
    "unknown": "Δεν είναι σίγουρος – να προτείνει η εταιρεία",
}


def normalize_status(value: Any) -> str:
    return str(value or "").strip().lower() or STATUS_PENDING


def is_known_status(value: Any) -> bool:
    return str(value or "").strip().lower() in STATUSES


def is_terminal(value: Any) -> bool:
    return normalize_status(value) in TERMINAL_STATUSES


def transition_allowed(from_status: Any, to_status: Any) -> bool:
    # Admins may move a request to any known status from any status.
    return is_known_status(to_status)


def admin_status_label(value: Any) -> str:
    status = normalize_status(value)
    return ADMIN_STATUS_LABELS.get(status, status)


def public_status_label(value: Any) -> str:
    status = normalize_status(value)
    return PUBLIC_STATUS_LABELS.get(status, status)


def ambulance_type_label(value: Any) -> str:
    code = str(value or "").strip()
    if not code:
        return "-"
    return AMBULANCE_TYPE_LABELS.get(code, code)


def status_options() -> list[dict[str, Any]]:
    return [
        {
            "value": code,
            "label": ADMIN_STATUS_LABELS[code],
            "public_label": PUBLIC_STATUS_LABELS[code],
            "terminal": code in TERMINAL_STATUSES,
        }
        for code in STATUSES
    ]
