"""
Public routers - No authentication required.
- /api/health - Health check
- /api/version - Application name and version
"""

from .health import router as health_router

__all__ = ["health_router"]
