"""
FastAPI application for the code judge backend
"""
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .auth_routes import auth_router
from .config import Config, configure_logging
from .database import Database
from .errors import register_exception_handlers
from .execution_routes import execution_router
from .judge0 import Judge0Client
from .judging import CodeJudge
from .playlist_routes import playlist_router
from .problem_routes import problem_router
from .rate_limiter import register_rate_limiter

logger = logging.getLogger(__name__)


def create_app(database: Optional[Database] = None, judge_client: Optional[Judge0Client] = None) -> FastAPI:
    """Build the application; tests pass their own database and Judge0 client"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database(Config.DATABASE_URL, echo=Config.ENABLE_SQL_LOGGING)
        client = judge_client or Judge0Client()
        owns_client = judge_client is None

        logger.info("Starting database initialization...")
        db.connect()
        db.create_tables()
        logger.info("Database initialization completed")

        app.state.database = db
        app.state.code_judge = CodeJudge(client)
        try:
            yield
        finally:
            if owns_client:
                await client.aclose()
            if database is None:
                db.dispose()

    app = FastAPI(title="Code Judge API",
                  description="Coding problems judged through Judge0",
                  version="1.0.0",
                  lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    register_rate_limiter(app)

    app.include_router(auth_router)
    app.include_router(problem_router)
    app.include_router(execution_router)
    app.include_router(playlist_router)

    @app.get("/api/health")
    def health_check():
        return {"status": "healthy", "service": "Code Judge API", "version": "1.0.0"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    Config.validate_config()
    Config.log_config_summary()

    try:
        Database(Config.DATABASE_URL).connect()
    except Exception:
        logger.critical("Failed to connect to the database", exc_info=True)
        sys.exit(1)

    uvicorn.run(app, host=Config.HOST, port=Config.PORT)
