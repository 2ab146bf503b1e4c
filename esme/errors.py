"""
Error types shared across e-SME services.
"""

from typing import Optional, Dict, Type


class EsmeError(Exception):
    """Base class for all e-SME errors."""


class NoCredential(EsmeError):
    """The conversation owner has not linked the required account."""

    def __init__(self, provider: str, user_id: Optional[str] = None):
        self.provider = provider
        self.user_id = user_id
        super().__init__(f"User {user_id} has no {provider} credential")


class SignatureInvalid(EsmeError):
    """Webhook request failed signature verification."""


class ReplayDetected(SignatureInvalid):
    """Webhook timestamp fell outside the accepted window."""


class ChannelNameCollision(EsmeError):
    """Both the desired channel name and its fallback are taken."""


class DuplicateEvent(EsmeError):
    """An inbound event was already recorded; callers discard it silently."""


class UnmappedChannel(EsmeError):
    """No conversation is bound to the event's channel."""


class UnmappedSender(EsmeError):
    """The event's sender has not linked an e-SME account."""


class TokenRefreshFailed(EsmeError):
    """Google rejected the refresh-token exchange."""

    def __init__(self, provider_error: str, description: Optional[str] = None):
        self.provider_error = provider_error
        self.description = description
        message = f"Failed to refresh Google access token: {provider_error}"
        if description:
            message += f" ({description})"
        super().__init__(message)


class NoRefreshToken(TokenRefreshFailed):
    """No refresh token is stored; the user must reconnect Google with offline access."""

    def __init__(self, user_id: Optional[str] = None):
        self.user_id = user_id
        super().__init__(
            "no_refresh_token",
            "User must re-connect Google with offline access"
        )


class UpstreamServiceError(EsmeError):
    """A remote service (Slack, Google, LLM) call failed."""


class LLMServiceError(UpstreamServiceError):
    """The LLM call failed or returned no usable answer."""


class DocumentFetchError(UpstreamServiceError):
    """A document's content could not be extracted."""


class SlackAPIError(UpstreamServiceError):
    """Slack Web API error; also the catch-all for codes without a dedicated subclass."""

    code = "unknown"

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None):
        if code:
            self.code = code
        self.message = message or self.code
        super().__init__(f"Slack API error: {self.code}" + (f" ({message})" if message and message != self.code else ""))

    @classmethod
    def from_code(cls, code: Optional[str], message: Optional[str] = None) -> "SlackAPIError":
        """Decode a Slack error code into its tagged variant."""
        error_class = SLACK_ERROR_CLASSES.get(code or "", SlackAPIError)
        if error_class is SlackAPIError:
            return SlackAPIError(code or "unknown", message)
        return error_class(message=message)


class AlreadyInChannel(SlackAPIError):
    code = "already_in_channel"


class NameTaken(SlackAPIError):
    code = "name_taken"


class AlreadyArchived(SlackAPIError):
    code = "already_archived"


class ChannelNotFound(SlackAPIError):
    code = "channel_not_found"


SLACK_ERROR_CLASSES: Dict[str, Type[SlackAPIError]] = {
    error_class.code: error_class
    for error_class in (AlreadyInChannel, NameTaken, AlreadyArchived, ChannelNotFound)
}
