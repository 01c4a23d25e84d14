# API endpoints
from . import health, invitations, reports, dashboard, exports

__all__ = ["health", "invitations", "reports", "dashboard", "exports"]
