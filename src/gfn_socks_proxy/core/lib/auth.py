"""Username/password authenticator."""

import hmac

from loguru import logger


class Authenticator:
    """Checks credentials against the configured username and password.

    A single failed attempt ends the session; there is no lockout and no
    rate limiting.
    """

    def __init__(self, username: str | None, password: str | None) -> None:
        self._username = username
        self._password = password

    def authenticate(self, username: str, password: str) -> bool:
        """Return True only when both values match exactly."""
        if self._username is None or self._password is None:
            logger.warning("Authentication attempted but no credentials are configured")
            return False
        # Evaluate both comparisons so timing does not reveal which one failed
        user_ok = hmac.compare_digest(username.encode(), self._username.encode())
        pass_ok = hmac.compare_digest(password.encode(), self._password.encode())
        return user_ok and pass_ok
