from .user import Role, User
from .cookie_consent import CookieConsent

__all__ = [
    "Role",
    "User",
    "CookieConsent",
]
