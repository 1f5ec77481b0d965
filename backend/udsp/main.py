import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from udsp.config import get_settings
from udsp.database import dispose_engine, init_db
from udsp.exceptions import LabDataError
from udsp.routers import auth as auth_router
from udsp.routers import lab_tests, reports, test_data, user

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("UDSP lab reporting API started (%s)", settings.environment)
    yield
    await dispose_engine()
    logger.info("UDSP lab reporting API stopped")


app = FastAPI(
    title="UDSP Lab Reporting",
    description="Daily laboratory sample counts, lab-test catalog, user accounts and date-range reports",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Middleware to add no-cache headers so reports and entries are never served stale."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
        return response


app.add_middleware(NoCacheMiddleware)


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


@app.exception_handler(LabDataError)
async def lab_data_error_handler(request: Request, exc: LabDataError):
    # 401s are routine for expired sessions
    level = logging.DEBUG if exc.status_code == 401 else logging.WARNING
    logger.log(level, "%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
    content = {"detail": exc.message}
    if exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        ctx_error = (err.get("ctx") or {}).get("error")
        message = str(ctx_error) if ctx_error else err.get("msg", "Invalid value")
        errors.append({"field": _field_name(err.get("loc", ())), "message": message})
    logger.warning("%s %s failed validation: %s", request.method, request.url.path, errors)
    return JSONResponse(status_code=400, content={"detail": "Validation failed", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    content = {"detail": "Internal server error"}
    if settings.is_development:
        content["message"] = str(exc)
    return JSONResponse(status_code=500, content=content)


app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
app.include_router(user.router, prefix="/api/user", tags=["Users"])
app.include_router(lab_tests.router, prefix="/api/labtests", tags=["Lab Tests"])
app.include_router(test_data.router, prefix="/api/testdata", tags=["Test Data"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "udsp-lab-reporting", "environment": settings.environment}
