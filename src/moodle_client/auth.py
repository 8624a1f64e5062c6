"""
Token holder shared by all requests of a client.
"""

from typing import Optional


class TokenAuthProvider:
    """
    Holds the web service token.

    The token is a single reference: authentication replaces it with one
    assignment and every call reads it once while building its request.
    Replacing the token while calls are in flight is not supported; those
    calls may be sent with either the old or the new token.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token

    @property
    def token(self) -> Optional[str]:
        return self._token

    def is_authenticated(self) -> bool:
        return bool(self._token)

    def set_token(self, token: str) -> None:
        """Set the web service token."""
        self._token = token
