import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kudos.api.v1.api import api_router
from kudos.core.config import settings
from kudos.core.errors import KudosError
from kudos.database import Database
from kudos.services.locks import UserLockRegistry

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup; tests may install their own database before the app starts
    database = getattr(app.state, "database", None)
    if database is None:
        database = app.state.database = Database()
    app.state.user_locks = UserLockRegistry()
    await database.create_all()
    logger.info("Database initialized successfully")
    yield
    # Shutdown
    await database.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KudosError)
async def kudos_error_handler(request: Request, exc: KudosError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


# Include API router
app.include_router(api_router, prefix="/api/v1")


# Health check
@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": settings.VERSION}


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME}"}


# Lambda handler for AWS deployment
from mangum import Mangum  # noqa: E402
lambda_handler = Mangum(app, lifespan="on")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
