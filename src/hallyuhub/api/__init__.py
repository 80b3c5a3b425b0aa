"""API module for HallyuHub.

Structure:
- routers/: admin duplicate/merge and filmography endpoints, cron triggers, health checks
- dependencies.py: Dependency injection (DB session, API clients, services)
- exception_handlers.py: Global error handlers
"""

from hallyuhub.api.routers import api_router

__all__ = ["api_router"]
