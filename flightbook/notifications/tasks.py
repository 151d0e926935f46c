import asyncio
import json

from celery.utils.log import get_task_logger
from redis import Redis

from flightbook.celery_app import celery_app
from flightbook.config import settings
from flightbook.services.notification_providers import get_provider
from flightbook.services.notification_service import NOTIF_COUNTER_RETRIED, NotificationService

logger = get_task_logger(__name__)

DLQ_KEY = "notification_dlq"


def push_to_dlq(payload: dict):
    client = Redis.from_url(settings.REDIS_URL)
    try:
        client.rpush(DLQ_KEY, json.dumps(payload))
    finally:
        client.close()


@celery_app.task(bind=True, max_retries=3)
def send_notification_task(self, channel: str, to: str, template_name: str, context: dict = None, locale: str = "en", provider_name: str = "log"):
    """Render and deliver one booking notification.

    Retries with exponential backoff; once retries run out the message is parked
    on the Redis dead-letter list.
    """
    context = context or {}
    if channel != "email":
        raise ValueError(f"Unsupported notification channel: {channel}")
    svc = NotificationService(get_provider(provider_name))

    try:
        return asyncio.run(
            svc.send_email(to=to, subject=context.get("subject", ""), template_name=template_name, context=context, locale=locale)
        )
    except Exception as exc:
        if self.request.retries >= self.max_retries:
            logger.error("Max retries exceeded for notification to %s; sending to DLQ", to)
            push_to_dlq({"channel": channel, "to": to, "template": template_name, "context": context, "locale": locale})
            raise
        NOTIF_COUNTER_RETRIED.labels(channel=channel, provider=provider_name).inc()
        logger.warning("Error sending notification, retrying: %s", exc)
        raise self.retry(exc=exc, countdown=2 ** self.request.retries)
