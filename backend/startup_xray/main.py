import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .database import Base, engine
from .exceptions import InvalidSubjectError, OracleError
from .routes import analyses_router, analyze_router, compare_router, startups_router


# Load environment variables from .env file
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _debug_enabled() -> bool:
    return os.getenv("DEBUG", "false").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup
    Base.metadata.create_all(bind=engine)
    print("Starting Startup X-Ray")
    print(f"   Perplexity Key:  {' Configured' if os.getenv('PERPLEXITY_API_KEY') else ' Not set (analysis calls will fail)'}")
    print(f"   Database:        {os.getenv('DATABASE_URL', 'sqlite:///./startup_xray.db')}")
    print("   Ready to analyze startups!")

    yield

    print("Shutting down Startup X-Ray")


app = FastAPI(
    title="Startup X-Ray",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analyze_router)
app.include_router(compare_router)
app.include_router(startups_router)
app.include_router(analyses_router)


@app.get(
    "/",
    summary="API Root",
    description="Welcome endpoint with API information",
    tags=["General"]
)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Startup X-Ray",
        "version": "0.1.0",
        "description": "VC-style startup and founder analysis with extracted metrics",
        "docs": "/docs",
        "endpoints": {
            "analyze": "POST /analyze - Analyze a startup and/or founder",
            "compare": "POST /compare - Compare two businesses",
            "startups": "GET/POST /startups - Saved startups",
            "analyses": "GET/POST /analyses - Saved analyses",
            "health": "GET /health - Service health check",
        }
    }


@app.get(
    "/health",
    summary="Global Health Check",
    description="Check if the API server is running",
    tags=["General"]
)
async def health():
    """Global health check endpoint."""
    return {
        "status": "healthy",
        "service": "startup-xray",
        "version": "0.1.0"
    }


def _first_validation_message(errors) -> str:
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = first.get("msg", "Invalid request")
    fields = [str(part) for part in first.get("loc", ()) if isinstance(part, str) and part not in ("body", "query")]
    return f"{fields[-1]}: {message}" if fields else message


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed input gets the same {success, error} envelope as a rejected subject."""
    logger.warning("[VALIDATION] %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": _first_validation_message(exc.errors())},
    )


@app.exception_handler(InvalidSubjectError)
async def invalid_subject_handler(request: Request, exc: InvalidSubjectError):
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


@app.exception_handler(OracleError)
async def oracle_error_handler(request: Request, exc: OracleError):
    """Oracle failures reach the user as a generic message; retry is left to them."""
    logger.error("[ORACLE] %s on %s: %s", type(exc).__name__, request.url.path, exc)
    message = (
        "Failed to compare businesses"
        if request.url.path.startswith("/compare")
        else "Failed to generate analysis"
    )
    content = {"success": False, "error": message}
    if _debug_enabled():
        content["detail"] = str(exc)
    return JSONResponse(status_code=502, content=content)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "detail": str(exc) if _debug_enabled() else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "startup_xray.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=_debug_enabled(),
    )
