"""
core/errors.py
--------------
Domain exceptions raised by the service layer.

Services never build HTTP responses. Routes translate these into
HTTPException, and the two redirect-type errors (LoginRequired,
NoTenantSelectedError) are handled application-wide in main.py because
they originate inside dependencies.
"""


class StorefrontError(Exception):
    """Base class for all domain errors."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StorefrontError):
    """Malformed input, e.g. an invalid email address or date range."""

    default_message = "Invalid input"


class RateLimitError(StorefrontError):
    """A magic link was requested again inside the cooldown window."""

    default_message = "Please wait a moment before requesting another link"


class InvalidLinkError(StorefrontError):
    """
    Magic link is unknown, expired, consumed, or bound to another email.
    The message never says which check failed.
    """

    default_message = "Invalid or expired link"


class MailDeliveryError(StorefrontError):
    default_message = "Failed to send sign-in email"


class NoTenantSelectedError(StorefrontError):
    default_message = "No store selected - please select a store first"


class LoginRequired(StorefrontError):
    """Control-flow signal: the request has no valid session."""

    default_message = "Authentication required"
