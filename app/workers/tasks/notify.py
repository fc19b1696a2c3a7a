from __future__ import annotations

from typing import Any

from app.services.notifications import dispatch_new_request_notifications
from app.workers.celery_app import celery_app


@celery_app.task(name="app.workers.tasks.notify.send_new_request_notifications")
def send_new_request_notifications(payload: dict[str, Any]):
    return dispatch_new_request_notifications(payload)
