"""API route modules."""

from klarolink.api.routes.auth import router as auth_router
from klarolink.api.routes.dashboard import router as dashboard_router
from klarolink.api.routes.forms import router as forms_router
from klarolink.api.routes.health import router as health_router
from klarolink.api.routes.products import router as products_router
from klarolink.api.routes.profile import router as profile_router
from klarolink.api.routes.public import router as public_router
from klarolink.api.routes.reviews import router as reviews_router

__all__ = [
    "auth_router",
    "dashboard_router",
    "forms_router",
    "health_router",
    "products_router",
    "profile_router",
    "public_router",
    "reviews_router",
]
