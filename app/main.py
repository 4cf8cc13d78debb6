from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.core import config, setup_scheduler, start_scheduler, stop_scheduler
from app.core.errors import ContestError
from app.database import Database
from app.routes.contest.contest_routes import router as contest_router
from app.routes.contest.status_routes import router as status_router
from app.routes.admin.admin_routes import router as admin_router
from app.routes.cron.cron_routes import router as cron_router
from app.utils.response import contest_error_response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for the application"""
    # Startup
    await Database.connect_db()

    if config.SCHEDULER_ENABLED:
        setup_scheduler()
        start_scheduler()

    yield
    # Shutdown
    stop_scheduler()
    await Database.close_db()


app = FastAPI(
    title=config.APP_NAME,
    version=config.APP_VERSION,
    description="Blitz creator battle oracle: contest lifecycle, deposit and content monitoring",
    lifespan=lifespan
)

# CORS middleware
# In development, allow all origins for easier testing
cors_origins = [
    config.FRONTEND_URL,
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins if not config.DEBUG else ["*"],
    allow_credentials=not config.DEBUG,  # Can't use credentials with wildcard origin
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ContestError)
async def handle_contest_error(request: Request, exc: ContestError):
    """Errors raised outside route bodies (e.g. store not connected in a dependency)"""
    return contest_error_response(exc)


# Include routers with /api prefix
app.include_router(contest_router, prefix="/api")
app.include_router(status_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(cron_router, prefix="/api")


@app.get("/")
async def read_root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {config.APP_NAME} API",
        "version": config.APP_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}
