"""Business settings: fees, seat policy, verification windows."""

from decimal import Decimal

from decouple import config

# Fee schedule
GENERAL_EVENT_PACKAGE_FEE = config("GENERAL_EVENT_PACKAGE_FEE", cast=Decimal, default="300")
GENERAL_WORKSHOP_FEE = config("GENERAL_WORKSHOP_FEE", cast=Decimal, default="400")
PARTNER_YEAR_ONE_EVENT_PACKAGE_FEE = config("PARTNER_YEAR_ONE_EVENT_PACKAGE_FEE", cast=Decimal, default="250")
PARTNER_WORKSHOP_FEE = config("PARTNER_WORKSHOP_FEE", cast=Decimal, default="300")

# "payment": seats are taken when the payment is verified (default).
# "registration": seats are held at registration and returned by release_holds.
SEAT_DECREMENT_POLICY = config("SEAT_DECREMENT_POLICY", default="payment")

# One-time codes and verification tokens
OTP_TTL_SECONDS = config("OTP_TTL_SECONDS", default=300, cast=int)
OTP_MAX_ATTEMPTS = config("OTP_MAX_ATTEMPTS", default=5, cast=int)
VERIFICATION_TOKEN_TTL_SECONDS = config("VERIFICATION_TOKEN_TTL_SECONDS", default=900, cast=int)

# Payments
MIN_TRANSACTION_ID_LENGTH = config("MIN_TRANSACTION_ID_LENGTH", default=6, cast=int)
RECONCILIATION_AMOUNT_TOLERANCE = config("RECONCILIATION_AMOUNT_TOLERANCE", cast=Decimal, default="0.01")

# Registration codes look like SYMP26EVENT0042 / SYMP26PWORKSHOP0007
REGISTRATION_CODE_PREFIX = config("REGISTRATION_CODE_PREFIX", default="SYMP26")

# Read caches
PARTICIPANT_STATUS_CACHE_TIMEOUT = config("PARTICIPANT_STATUS_CACHE_TIMEOUT", default=300, cast=int)
ADMIN_STATS_CACHE_TIMEOUT = config("ADMIN_STATS_CACHE_TIMEOUT", default=60, cast=int)

# Dotted path to a class implementing events.protocols.PartnerRoster
PARTNER_ROSTER_BACKEND = config("PARTNER_ROSTER_BACKEND", default="events.service.roster.DatabaseRoster")
