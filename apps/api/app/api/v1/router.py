"""API v1 router combining all route modules."""

from fastapi import APIRouter

from app.api.v1 import analysis, auth, gdpr, health, subscription

api_router = APIRouter()

# Include health check routes (no prefix)
api_router.include_router(health.router)

# Registration, login and tokens
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["auth"],
)

# Image analysis (requires auth + GDPR consent to create)
api_router.include_router(
    analysis.router,
    prefix="/analysis",
    tags=["analysis"],
)

# Premium subscription (webhook verified via signature, no auth)
api_router.include_router(
    subscription.router,
    prefix="/subscription",
    tags=["subscription"],
)

# Consent, export and erasure
api_router.include_router(
    gdpr.router,
    prefix="/gdpr",
    tags=["gdpr"],
)
