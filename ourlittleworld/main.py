"""
FastAPI application factory
"""
import logging
import traceback

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from ourlittleworld.api.errors import register_exception_handlers
from ourlittleworld.api.v1 import auth, budget, changes, moods, posts, savings_goals, transactions, worlds
from ourlittleworld.config import get_settings
from ourlittleworld.infrastructure.db.session import check_db_connection

logger = logging.getLogger(__name__)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Catches everything the exception handlers did not, including sync routes"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception:
            tb_str = traceback.format_exc()
            logger.error("\n%s\nERROR on %s %s\n%s%s", "=" * 60, request.method, request.url.path, tb_str, "=" * 60)
            return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


def create_app() -> FastAPI:
    """
    Application factory - builds and configures the FastAPI app

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(
        title="OurLittleWorld",
        debug=settings.DEBUG,
    )

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY,
    )
    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(worlds.router)
    app.include_router(transactions.router)
    app.include_router(budget.router)
    app.include_router(savings_goals.router)
    app.include_router(posts.router)
    app.include_router(moods.router)
    app.include_router(changes.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (verifies the database is reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ourlittleworld.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
