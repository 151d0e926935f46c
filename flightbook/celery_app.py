from celery import Celery
from flightbook.config import settings


celery_app = Celery(
    "flightbook_tasks",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["flightbook.notifications.tasks"],
)

celery_app.conf.update(task_track_started=True, task_acks_late=True)
