from fastapi import APIRouter
from app.api.v1.endpoints import health, invitations, reports, dashboard, exports

api_router = APIRouter()

# Deep health check endpoints (use /health/ready for load balancers)
api_router.include_router(health.router)

api_router.include_router(invitations.router)
api_router.include_router(reports.router)
api_router.include_router(dashboard.router)
api_router.include_router(exports.router)
