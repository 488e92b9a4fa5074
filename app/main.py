"""FastAPI application entrypoint: wiring, middleware, and error handlers only."""

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import router as v1_router
from app.core.config import settings
from app.core.errors import register_exception_handlers


def create_app() -> FastAPI:
    """Build the API app. Every rejection leaves through register_exception_handlers as JSON."""
    application = FastAPI(
        title="TaskHub API",
        version="0.1.0",
        description="Session authentication and role-based authorization for TaskHub.",
        debug=settings.DEBUG,
    )
    # Session id travels in a custom header; browsers need it allowed and exposed.
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_ENV == "dev" else [settings.FRONTEND_URL],
        allow_credentials=settings.APP_ENV != "dev",
        allow_methods=["*"],
        allow_headers=["Authorization", "Content-Type", "X-Session-Id"],
        expose_headers=["X-Session-Id"],
    )
    register_exception_handlers(application)
    application.include_router(v1_router, prefix=settings.API_V1_PREFIX)

    @application.get("/", include_in_schema=False)
    def root() -> dict[str, str]:
        return {"message": "TaskHub API", "docs": "/docs"}

    return application


app = create_app()
