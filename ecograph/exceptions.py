"""Custom exceptions for ecograph."""


class EcographError(Exception):
    """Base exception for all ecograph errors."""


class ConfigError(EcographError):
    """Raised when an ``ECOGRAPH_*`` setting holds an unusable value."""


class StoreUnavailableError(EcographError):
    """Raised when a store operation keeps failing after every retry."""

    def __init__(self, operation: str, attempts: int, cause: BaseException | None = None):
        self.operation = operation
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"store operation '{operation}' failed after {attempts} attempt(s): {cause}")


class DiscoveryError(EcographError):
    """Raised when no repository listing produced a single candidate."""


class GraphError(EcographError):
    """Raised when the working dataset cannot be turned into a graph."""


class PipelineStateError(EcographError):
    """Raised on an illegal run state transition."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"cannot move pipeline from {current} to {requested}")
