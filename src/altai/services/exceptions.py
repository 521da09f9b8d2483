"""Custom exceptions for altai services."""


class AltAIError(Exception):
    """Base class for all altai errors."""


class ConfigurationError(AltAIError):
    """Raised when a required setting (such as the API key) is missing."""


class UpstreamError(AltAIError):
    """Raised when the chat-completion endpoint returns a non-success status.

    Attributes:
        status_code: HTTP status returned by the endpoint
        detail: Best-effort error message from the response body
    """

    def __init__(self, status_code: int, detail: str = ""):
        """Initialize UpstreamError.

        Args:
            status_code: HTTP status returned by the endpoint
            detail: Error message extracted from the response body, if any
        """
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"AI service error: {status_code}")


class InvalidRequestError(AltAIError):
    """Raised when an inbound request is malformed, before any network call."""


class FieldUpdateParseError(AltAIError):
    """Raised internally when a model reply is not a field-update proposal.

    The parser converts this into ``None``; callers never see it.
    """


class StoreUnavailableError(AltAIError):
    """Raised when the live content store or its publish module can't be found."""


class CapabilityDisabledError(AltAIError):
    """Raised when a single-shot action is disabled in configuration."""

    def __init__(self, action: str, capability: str):
        self.action = action
        self.capability = capability
        super().__init__(f"Capability '{capability}' is disabled (action: {action})")


class ConversationBusyError(AltAIError):
    """Raised when a message is sent while another turn is still in flight."""
