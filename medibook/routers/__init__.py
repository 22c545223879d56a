"""API router initializers."""

from fastapi import APIRouter


def get_api_router() -> APIRouter:
    """Construct and return the API router."""

    from medibook.routers.admin import router as admin_router
    from medibook.routers.appointments import router as appointments_router
    from medibook.routers.auth import router as auth_router
    from medibook.routers.chat import router as chat_router
    from medibook.routers.doctors import router as doctors_router
    from medibook.routers.notifications import router as notifications_router

    api_router = APIRouter()
    api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
    api_router.include_router(doctors_router, prefix="/doctors", tags=["doctors"])
    api_router.include_router(
        appointments_router,
        prefix="/appointments",
        tags=["appointments"],
    )
    api_router.include_router(admin_router, prefix="/admin", tags=["admin"])
    api_router.include_router(
        notifications_router,
        prefix="/notifications",
        tags=["notifications"],
    )
    api_router.include_router(chat_router, tags=["chat"])
    return api_router
