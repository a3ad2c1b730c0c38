from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from opsroom.config import get_settings
from opsroom.meetings.routes import router as meetings_router
from opsroom.rooms.routes import action_items_router, router as rooms_router
from opsroom.utils.logging_setup import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_dir)

    app = FastAPI(title="Ops Room Companion API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.cors_origins],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router, prefix="/api/rooms", tags=["rooms"])
    app.include_router(meetings_router, prefix="/api/meetings", tags=["meetings"])
    app.include_router(action_items_router, prefix="/api/action-items", tags=["action-items"])

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
