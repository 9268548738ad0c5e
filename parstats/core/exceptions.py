"""
Exception hierarchy for parstats.

All exceptions inherit from ParStatsError to allow catching any
library-specific error. Domain-specific exceptions should inherit from
the appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class ParStatsError(Exception):
    """Base exception for all parstats errors."""
    pass


class ValidationError(ParStatsError):
    """
    Input validation failed.

    Raised when user-provided inputs or operation preconditions fail
    validation checks (empty input, maximum < minimum, problem size < 1).
    Always raised before any kernel is dispatched.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect.

    Raised when the value buffer is not one-dimensional.
    """
    pass


class DispatchError(ParStatsError):
    """
    A compute backend failed to execute a kernel.

    Dispatch failures are never retried: the pipeline is aborted and the
    backend's diagnostic is surfaced to the caller.

    Attributes:
        kernel: Name of the kernel being dispatched, if known
        backend_name: Identifier of the backend that failed
        diagnostic: Backend-provided diagnostic text (error string, code)
    """

    def __init__(
        self,
        message: str,
        kernel: str | None = None,
        backend_name: str | None = None,
        diagnostic: str | None = None
    ):
        super().__init__(message)
        self.kernel = kernel
        self.backend_name = backend_name
        self.diagnostic = diagnostic


class KernelBuildError(DispatchError):
    """
    A kernel could not be built for a backend.

    Raised when a backend is asked for a kernel it does not provide.

    Attributes:
        build_log: Backend build log listing what is available
    """

    def __init__(
        self,
        message: str,
        kernel: str | None = None,
        backend_name: str | None = None,
        build_log: str | None = None
    ):
        super().__init__(
            message, kernel=kernel, backend_name=backend_name, diagnostic=build_log
        )
        self.build_log = build_log
