from typing import Optional
from urllib.parse import quote

from learnhub.core.constants import LOGIN_ROUTE


def login_redirect(path: Optional[str] = None) -> str:
    """Login route that sends the user back to `path` after signing in."""
    if not path:
        return LOGIN_ROUTE
    return f"{LOGIN_ROUTE}?redirect={quote(path, safe='/')}"


class AuthenticationRequiredError(Exception):
    """Raised when an action needs a signed-in user. Rendered as 401 with a login redirect."""

    def __init__(self, path: Optional[str] = None, message: str = "Authentication required"):
        super().__init__(message)
        self.message = message
        self.redirect_to = login_redirect(path)
