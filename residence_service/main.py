import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import LOG_LEVEL, UPLOAD_URL_PREFIX
from .database import Base, SessionLocal, engine
from .errors import ServiceError
from .routers import auth, complaints, facilities
from .seed import seed_defaults
from .storage import blob_store

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "residence"

# Create tables
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        seed_defaults(db)
    finally:
        db.close()
    logger.info("%s service started", SERVICE_NAME)
    yield


app = FastAPI(title="Residence Facility Service", version="1.0.0", lifespan=lifespan)
router_v1 = APIRouter(prefix="/api/v1")


def error_response(status_code: int, error: str, details=None) -> JSONResponse:
    content = {"success": False, "error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc.__cause__)
    return error_response(exc.status_code, exc.message, exc.details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        # drop the leading "body"/"query"/"path" marker
        location = ".".join(str(part) for part in err["loc"][1:])
        details.append(f"{location}: {err['msg']}" if location else err["msg"])
    logger.info("Validation error for %s: %s", request.url.path, details)
    return error_response(400, "Validation error", details)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


@app.get("/health")
def health():
    """
    Health-check endpoint for the residence service.

    Returns
    -------
    dict
        A small JSON payload indicating that the service is running.
    """
    return {"service": SERVICE_NAME, "status": "running"}


router_v1.include_router(auth.router)
router_v1.include_router(facilities.router)
router_v1.include_router(complaints.router)
app.include_router(router_v1)

app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=blob_store.directory), name="uploads")
