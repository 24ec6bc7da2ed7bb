"""
Rentals API - apartment listings for clients, realtors and admins.

Layout:
- auth: roles, capabilities, policies, tokens, sign-up/sign-in routes
- core: records, request schemas, errors, query building, directories
- storage: document storage (in-memory or MongoDB)
- integrations: AWS SES email, Sentry
- api: the FastAPI app and routers
"""

__version__ = "0.1.0"
