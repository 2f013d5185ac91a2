
class VoiceforgeError(Exception):
    """Base error. Carries the HTTP status the proxy answers with."""

    status_code = 500
    default_message = "An error occurred while processing your request"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ConfigurationError(VoiceforgeError):
    """No API key available from the request or the process configuration."""

    status_code = 400
    default_message = "ElevenLabs API key is not provided"


class ValidationError(VoiceforgeError):
    """A required field is missing or out of range."""

    status_code = 400
    default_message = "Invalid request"


class UpstreamError(VoiceforgeError):
    """The upstream API answered with a non-success status."""

    default_message = "Upstream request failed"


class TransportError(VoiceforgeError):
    """Network failure or unparseable upstream payload."""

    status_code = 500
