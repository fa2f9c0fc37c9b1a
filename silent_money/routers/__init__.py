"""API routers mounted under the versioned prefix."""

from silent_money.routers import (
    admin,
    audits,
    auth,
    categories,
    contact,
    franchises,
    ideas,
    insights,
    library,
    notifications,
    profiles,
    uploads,
)

API_ROUTERS = [
    auth.router,
    profiles.router,
    categories.router,
    ideas.router,
    franchises.router,
    library.router,
    insights.router,
    audits.router,
    notifications.router,
    uploads.router,
    contact.router,
    admin.router,
]

__all__ = ["API_ROUTERS"]
