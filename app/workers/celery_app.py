from celery import Celery
from app.core.config import settings

celery_app = Celery("ambugo", broker=settings.REDIS_URL, backend=settings.REDIS_URL, include=["app.workers.tasks.notify"])

celery_app.conf.task_ignore_result = True
celery_app.conf.timezone = settings.APP_TIMEZONE
