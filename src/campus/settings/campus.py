"""Domain knobs for registration, checkout confirmation and reminders."""

from decouple import config

# Checkout confirmation poller
CHECKOUT_POLL_INTERVAL_SECONDS = config("CHECKOUT_POLL_INTERVAL_SECONDS", default=3.0, cast=float)
CHECKOUT_POLL_MAX_ATTEMPTS = config("CHECKOUT_POLL_MAX_ATTEMPTS", default=20, cast=int)

# Reminder scheduler
REMINDER_LEAD_TIME_HOURS = config("REMINDER_LEAD_TIME_HOURS", default=3, cast=int)
ORGANISER_SUMMARY_LEAD_TIME_HOURS = config("ORGANISER_SUMMARY_LEAD_TIME_HOURS", default=24, cast=int)
REMINDER_BASE_BACKOFF_SECONDS = config("REMINDER_BASE_BACKOFF_SECONDS", default=60 * 60, cast=int)
REMINDER_MAX_ATTEMPTS = config("REMINDER_MAX_ATTEMPTS", default=3, cast=int)
REMINDER_SCAN_WINDOW_HOURS = (
    config("REMINDER_SCAN_WINDOW_START_HOURS", default=3, cast=int),
    config("REMINDER_SCAN_WINDOW_END_HOURS", default=30, cast=int),
)

# Rate limits (shared cache, see common.throttling)
REGISTRATION_RATE = config("REGISTRATION_RATE", default="3/min")
CHECKOUT_RATE = config("CHECKOUT_RATE", default="10/min")
