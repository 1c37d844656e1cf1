import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .database import init_db
from .exceptions import AnalyzerError
from .routes.competitors import router as competitors_router
from .services.http_client import close_client
from .services.rule_tables import get_rules


# Load environment variables from .env file
load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup
    print("Starting Competitive-Landscape Analyzer")
    print(f"   SerpAPI Key: {' Configured' if os.getenv('SERPAPI_KEY') else ' Not set (searches will fail)'}")
    rules = get_rules()
    print(f"   Rule tables: version {rules.version}")
    init_db()
    print("   Ready to analyze competitors!")

    yield

    await close_client()
    print("Shutting down Competitive-Landscape Analyzer")


app = FastAPI(
    title="Competitive-Landscape Analyzer",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(competitors_router)


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
        "service": "competitor-landscape-analyzer",
        "version": "0.1.0",
        "rules_version": get_rules().version,
    }


# ── Error rendering: every failure is {"error": "..."} ──────────────────

@app.exception_handler(AnalyzerError)
async def analyzer_exception_handler(request: Request, exc: AnalyzerError):
    """Map the analyzer error taxonomy onto HTTP statuses."""
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Invalid or missing input is a client error (400)."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        detail = f"{field}: {message}" if field else message
    else:
        detail = "Invalid request"
    return JSONResponse(status_code=400, content={"error": detail})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc) if os.getenv("DEBUG", "false").lower() == "true" else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("DEBUG", "true").lower() == "true",
    )
