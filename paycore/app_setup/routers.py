"""
Registre central des routers (API v1, admin, health).
"""
from fastapi import FastAPI
from paycore.payments import views as payments_views
from paycore.vault import views as vault_views
from paycore.guard import views as guard_views
from paycore.admin.views import router as admin_router
from paycore.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(guard_views.router)
    app.include_router(payments_views.router)
    app.include_router(vault_views.router)
    # Admin
    app.include_router(admin_router)
    # Health & monitoring
    app.include_router(health_router)
