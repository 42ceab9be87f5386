"""
API routes module.
"""

from pipeline.api.routes.health import router as health_router
from pipeline.api.routes.messages import router as messages_router
from pipeline.api.routes.received import router as received_router
from pipeline.api.routes.sessions import router as sessions_router

__all__ = ["health_router", "messages_router", "received_router", "sessions_router"]
