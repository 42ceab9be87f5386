"""
Async Failing Pipeline

A two-role demonstration service: a sender persists submitted messages and
publishes them to a durable queue, a receiver consumes them with simulated
latency and injected failures, acknowledging or rejecting each delivery.
"""

__version__ = "1.0.0"
