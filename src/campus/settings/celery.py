from celery.schedules import crontab
from decouple import config

from .base import DEBUG, REDIS_HOST, REDIS_PORT, TIME_ZONE

CELERY_REDIS_DB = config("CELERY_REDIS_DB", default=0, cast=int)

# CELERY
CELERY_BROKER_URL = f"redis://{REDIS_HOST}:{REDIS_PORT}/{CELERY_REDIS_DB}"
CELERY_ACCEPT_CONTENT = ["application/json"]
CELERY_RESULT_EXTENDED = True
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_RESULT_BACKEND = "django-db"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = config("CELERY_TASK_ALWAYS_EAGER", cast=bool, default=DEBUG)
CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True

# Task execution settings
CELERY_TASK_TIME_LIMIT = 300  # Hard limit: kill task after 5 minutes
CELERY_TASK_SOFT_TIME_LIMIT = 240  # Soft limit: raise exception after 4 minutes
CELERY_WORKER_PREFETCH_MULTIPLIER = 1  # A reminder job is owned by one worker at a time
CELERY_TASK_ACKS_LATE = True  # Acknowledge only after the task body (and the send) has finished
CELERY_TASK_REJECT_ON_WORKER_LOST = True

# Reminder ETAs can be a day out; the redis visibility timeout must exceed that or
# unacknowledged messages get redelivered early.
CELERY_BROKER_TRANSPORT_OPTIONS = {
    "visibility_timeout": config("CELERY_VISIBILITY_TIMEOUT", default=60 * 60 * 36, cast=int),
}

CELERY_BEAT_SCHEDULER = "django_celery_beat.schedulers:DatabaseScheduler"
CELERY_BEAT_SCHEDULE = {
    "scan-upcoming-reminders": {
        "task": "notifications.scan_upcoming_reminders",
        "schedule": crontab(minute=0),
    },
    "cleanup-email-logs": {
        "task": "common.cleanup_email_logs",
        "schedule": crontab(hour=3, minute=0),
    },
    "flush-expired-tokens": {
        "task": "api.flush_expired_tokens",
        "schedule": crontab(hour=4, minute=0),
    },
}
