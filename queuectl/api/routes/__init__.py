"""
API routes module.
"""

from queuectl.api.routes.config import router as config_router
from queuectl.api.routes.dlq import router as dlq_router
from queuectl.api.routes.health import router as health_router
from queuectl.api.routes.jobs import router as jobs_router

__all__ = ["jobs_router", "dlq_router", "config_router", "health_router"]
