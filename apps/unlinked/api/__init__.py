"""API router registration helpers.

Routers are imported lazily inside `register_routes` so importing a submodule
(e.g. during test collection) does not build Mongo clients or the socket server.
"""

from fastapi import FastAPI


def register_routes(app: FastAPI) -> None:
    """Attach all API routers (lazy imports)."""
    from unlinked.api.chats import router as chats_router
    from unlinked.api.notifications import router as notifications_router
    from unlinked.api.system import router as system_router
    from unlinked.api.users import router as users_router

    routers = [
        system_router,
        chats_router,
        notifications_router,
        users_router,
    ]
    for router in routers:
        app.include_router(router)
