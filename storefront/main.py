from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlmodel import Session
from starlette.middleware.gzip import GZipMiddleware

# Load environment variables as early as possible
load_dotenv()

from .core.config import settings
from .core.errors import add_exception_handlers
from .database import create_db_and_tables, engine
from .middleware import SecurityMiddleware, LoggingMiddleware, ErrorHandlingMiddleware
from .routers import auth_router, cart_router, admin_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENV})...")
    app.state.db_init_ok = True
    app.state.db_init_error = None
    if settings.is_production and settings.ACCESS_TOKEN_SECRET.startswith("change-me"):
        logger.error("ACCESS_TOKEN_SECRET is still the default value")
    try:
        create_db_and_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        # Do not crash the app; report via health endpoint
        app.state.db_init_ok = False
        app.state.db_init_error = str(e)
        logger.exception("Database initialization failed")
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}...")


# Initialize FastAPI
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

add_exception_handlers(app)

# Add middleware
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityMiddleware)

# GZip compression
app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)

# Add CORS middleware; credentials are needed for the refresh cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router)
app.include_router(cart_router.router)
app.include_router(admin_router.router)


# Health check endpoint
@app.get("/health")
def health_check():
    checks = {}
    try:
        with Session(engine) as session:
            session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error(f"Health check database query failed: {e}")
        checks["database"] = "error"

    healthy = getattr(app.state, "db_init_ok", True) and checks["database"] == "ok"
    return {
        "status": "healthy" if healthy else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENV,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("storefront.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
