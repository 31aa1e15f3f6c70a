# Campaign Ledger Routers Module
# Exports all modular API routers

from routers.campaigns import router as campaigns_router
from routers.invitations import router as invitations_router
from routers.negotiations import router as negotiations_router
from routers.lifecycle import router as lifecycle_router
from routers.notifications import router as notifications_router

__all__ = [
    'campaigns_router',
    'invitations_router',
    'negotiations_router',
    'lifecycle_router',
    'notifications_router',
]
