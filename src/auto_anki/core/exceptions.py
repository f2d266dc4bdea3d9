"""Custom exceptions for auto-anki."""


class AutoAnkiError(Exception):
    """Base exception for all auto-anki errors."""
    pass


class EmptyInputError(AutoAnkiError):
    """No source text, or zero questions requested."""
    pass


class AuthenticationError(AutoAnkiError):
    """The provider rejected the API credential."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class ProviderError(AutoAnkiError):
    """Non-authentication failure reported by the LLM provider."""

    def __init__(self, message: str, status_code: int = None, body: str = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class TransportError(AutoAnkiError):
    """Connection-level failure talking to the provider, including timeouts."""
    pass


class NoValidRecordsError(AutoAnkiError):
    """The provider answered but no block survived validation."""

    def __init__(self, message: str, raw_response: str = "", failures: list = None):
        self.raw_response = raw_response
        self.failures = failures or []
        super().__init__(message)


class PipelineBusyError(AutoAnkiError):
    """An export was started while another one is still running."""
    pass


class ConfigError(AutoAnkiError):
    """Error in configuration."""

    def __init__(self, message: str, config_key: str = None):
        self.config_key = config_key
        super().__init__(message)


class AnkiConnectError(AutoAnkiError):
    """AnkiConnect returned an error for an action."""

    def __init__(self, message: str, action: str = None):
        self.action = action
        super().__init__(message)


class ControlApiUnreachableError(AnkiConnectError):
    """AnkiConnect could not be reached at all."""
    pass
