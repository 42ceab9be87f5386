"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class ServiceRole(StrEnum):
    """Role a process plays in the pipeline."""

    SENDER = "sender"
    RECEIVER = "receiver"


class DeliveryState(StrEnum):
    """
    Queue delivery lifecycle states.

    State transitions:
    - DELIVERED -> PROCESSING (simulated work started)
    - PROCESSING -> PERSISTED (activity record written)
    - PERSISTED -> ACKED (broker acknowledged)
    - DELIVERED -> REJECTED
    - PROCESSING -> REJECTED (injected failure or persistence error)

    ACKED and REJECTED are terminal.
    """

    DELIVERED = "delivered"
    PROCESSING = "processing"
    PERSISTED = "persisted"
    ACKED = "acked"
    REJECTED = "rejected"


DELIVERY_TRANSITIONS: dict[DeliveryState, frozenset[DeliveryState]] = {
    DeliveryState.DELIVERED: frozenset({DeliveryState.PROCESSING, DeliveryState.REJECTED}),
    DeliveryState.PROCESSING: frozenset({DeliveryState.PERSISTED, DeliveryState.REJECTED}),
    DeliveryState.PERSISTED: frozenset({DeliveryState.ACKED}),
    DeliveryState.ACKED: frozenset(),
    DeliveryState.REJECTED: frozenset(),
}

# Display palette for instance identities
INSTANCE_COLORS: tuple[str, ...] = (
    "#6666ff",
    "#66b266",
    "#ffc966",
    "#ff6666",
    "#b266b2",
    "#26acff",
    "#31e8ee",
    "#c1e06c",
    "#f49c4c",
    "#f787ce",
)

# Upper bound for the random suffix in instance names
INSTANCE_NAME_SPACE = 2147483647

# Table names
SENT_MESSAGES_TABLE = "sent_messages"
PROCESSED_MESSAGES_TABLE = "processed_messages"

# Dependency names used in logs and metrics
DEPENDENCY_QUEUE = "queue"
DEPENDENCY_SESSION_STORE = "session_store"

# Session handling
SESSION_COOKIE_NAME = "pipeline_sid"
SESSION_KEY_PREFIX = "sess:"

SIMULATED_FAILURE_MESSAGE = "*Random testing error!*"

# Metrics names
METRIC_MESSAGES_SUBMITTED = "messages_submitted_total"
METRIC_DELIVERIES = "deliveries_total"
METRIC_DELIVERIES_IN_FLIGHT = "deliveries_in_flight"
METRIC_PROCESSING_DURATION = "delivery_processing_seconds"
METRIC_BOOTSTRAP_ATTEMPTS = "bootstrap_attempts_total"

# Trace span names
SPAN_SUBMIT_MESSAGE = "submit_message"
SPAN_PROCESS_DELIVERY = "process_delivery"
SPAN_BOOTSTRAP_DEPENDENCY = "bootstrap_dependency"
