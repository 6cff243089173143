from __future__ import annotations

INVALID_CONFIGURATION = 1001
NETWORK_ERROR = 1002
ATTRIBUTION_FAILED = 1003
INVALID_URL = 1004
MISSING_CREDENTIALS = 1005


class AttributionError(Exception):
    """
    Base for every failure the engine reports to the host.

    Engine-level failures travel as values (Failure(error)) through the handler or the
    completion callback; they are not raised across the public API.
    """

    code: int = INVALID_CONFIGURATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotConfiguredError(AttributionError):
    code = INVALID_CONFIGURATION

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} called before configure()")
        self.operation = operation


class MissingCredentialsError(AttributionError):
    code = MISSING_CREDENTIALS

    def __init__(self, *, development_mode: bool) -> None:
        mode = "test" if development_mode else "live"
        super().__init__(f"Missing API credentials for {mode} mode")
        self.development_mode = development_mode


class InvalidConfigurationError(AttributionError):
    code = INVALID_CONFIGURATION


class AttributionFailedError(AttributionError):
    """
    Wraps a transport/service failure. The underlying error is always kept, both as
    `.cause` and as the exception's `__cause__`.
    """

    code = ATTRIBUTION_FAILED

    def __init__(self, message: str, cause: BaseException) -> None:
        if cause is None:
            raise TypeError("AttributionFailedError requires a cause")
        super().__init__(f"{message}: {cause}")
        self.cause = cause
        self.__cause__ = cause


class SecureStoreError(Exception):
    """Raised by SecureStore implementations when durable storage is unavailable."""
