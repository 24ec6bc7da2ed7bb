"""
Third-party integrations: AWS SES email and Sentry error tracking.
"""

from rentals.integrations.email import EmailService
from rentals.integrations.sentry import init_sentry, set_user

__all__ = ["EmailService", "init_sentry", "set_user"]
