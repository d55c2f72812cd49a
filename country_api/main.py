from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import os
import traceback

from country_api.config import get_settings
from country_api.database import init_db, close_db
from country_api.api.routes import router

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

AVAILABLE_ROUTES = [
    "POST /countries/refresh",
    "GET /countries",
    "GET /countries/:name",
    "DELETE /countries/:name",
    "GET /countries/image",
    "GET /status",
]

# Create FastAPI app
app = FastAPI(
    title="Country Currency & Exchange API",
    description="RESTful API for fetching country data with currency exchange rates",
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    if settings.is_development:
        logger.info(f"{request.method} {request.url.path} query={dict(request.query_params)}")
    return await call_next(request)


# Initialize database on startup
@app.on_event("startup")
def on_startup():
    logger.info("🔄 Initializing database...")
    init_db()

    # Create cache directory
    cache_dir = os.path.dirname(settings.image_path) or "."
    os.makedirs(cache_dir, exist_ok=True)
    logger.info(f"Cache directory ready: {cache_dir}")


@app.on_event("shutdown")
def on_shutdown():
    close_db()


# Include routers
app.include_router(router, tags=["countries"])


# Root endpoint
@app.get("/")
def root():
    return {
        "message": "Country Currency & Exchange API",
        "version": "1.0.0",
        "status": "running",
        "environment": settings.environment,
        "endpoints": {
            "POST /countries/refresh": "Fetch and cache country data",
            "GET /countries": "Get all countries (filters: region, currency, sort)",
            "GET /countries/{name}": "Get specific country",
            "DELETE /countries/{name}": "Delete country",
            "GET /countries/image": "Get summary image",
            "GET /status": "Get total countries and last refresh time",
            "GET /health": "Service and database health",
            "GET /test-apis": "Test external APIs",
            "GET /docs": "API documentation"
        }
    }


# Validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        field = error['loc'][-1] if error['loc'] else "request"
        errors[str(field)] = error['msg']

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "details": errors
        }
    )


# HTTPException handler (also receives unmatched routes)
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # If detail is already a dict with 'error' key, return as is
    if isinstance(exc.detail, dict) and 'error' in exc.detail:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.detail,
            headers=getattr(exc, "headers", None)
        )

    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "Not found",
                "message": f"Route {request.method} {request.url.path} does not exist",
                "availableRoutes": AVAILABLE_ROUTES
            }
        )

    # Otherwise wrap it
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None)
    )


# Generic error handler
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)

    content = {"error": "Internal server error"}
    if settings.is_development:
        content["details"] = str(exc)
        content["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("country_api.main:app", host="0.0.0.0", port=settings.port, reload=settings.is_development)
