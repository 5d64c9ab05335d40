from decimal import Decimal

from decouple import config

DEFAULT_CURRENCY = config("DEFAULT_CURRENCY", "GBP")
PLATFORM_FEE_PERCENT = config("PLATFORM_FEE_PERCENT", cast=Decimal, default="5.00")
STRIPE_SECRET_KEY = config("STRIPE_SECRET_KEY", default="sk_test_...")
STRIPE_PUBLISHABLE_KEY = config("STRIPE_PUBLISHABLE_KEY", default="pk_test_...")
# Connected accounts are created in this country (express accounts, destination charges)
STRIPE_CONNECT_COUNTRY = config("STRIPE_CONNECT_COUNTRY", default="GB")
STRIPE_MAX_NETWORK_RETRIES = config("STRIPE_MAX_NETWORK_RETRIES", default=2, cast=int)
