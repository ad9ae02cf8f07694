# sakany/app/security/permissions.py
from typing import Optional

from sakany.app.core.config import Settings
from sakany.app.core.exceptions import Forbidden
from sakany.app.models.user import User


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_admin_email(email: str, settings: Settings) -> bool:
    """
    Admin allow-list check used at registration.

    Matches ADMIN_EMAILS exactly or ADMIN_EMAIL_DOMAINS by domain,
    both case-insensitive.
    """
    email = normalize_email(email)
    if not email or "@" not in email:
        return False
    if email in settings.admin_emails:
        return True
    domain = email.rsplit("@", 1)[1]
    return domain in settings.admin_email_domains


def require_admin(requester: Optional[User]) -> User:
    """Raise Forbidden unless the requester is a signed-in admin."""
    if requester is None or not requester.is_admin:
        raise Forbidden()
    return requester
