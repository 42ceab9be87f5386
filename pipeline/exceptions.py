"""
Exception taxonomy for the delivery pipeline.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ConnectError(PipelineError):
    """
    A dependency could not be reached during bootstrap.

    Always retried by the bootstrapper, never surfaced after startup.
    """

    def __init__(self, dependency: str, reason: str):
        super().__init__(f"Failed to connect to {dependency}: {reason}")
        self.dependency = dependency
        self.reason = reason


class PersistenceError(PipelineError):
    """An activity record could not be written or read."""


class PublishError(PipelineError):
    """A message could not be published to the queue."""


class SimulatedFailure(PipelineError):
    """Deliberately injected processing failure."""


class EmptyPayloadError(PipelineError, ValueError):
    """A submitted payload was empty after trimming whitespace."""


class InvalidDeliveryTransition(PipelineError, RuntimeError):
    """A delivery was moved along an edge its state machine does not allow."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move delivery from {current} to {target}")
        self.current = current
        self.target = target
