import asyncio
import logging
import traceback

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from bson.errors import InvalidId
from pymongo.errors import OperationFailure
from rich.logging import RichHandler
from starlette.exceptions import HTTPException as StarletteHTTPException

import settings
from auth import TokenVerifier, get_verifier
from database import get_db
from errors import error_body
from routes import brands, cars, categories, users

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)],
)
logger = logging.getLogger("carrental")

# Mongo error codes surfaced by the global handler
UNAUTHORIZED = 13
BAD_VALUE = 2

# App setup
app = FastAPI(title="Car Rental API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o for o in (settings.FRONTEND_URL, settings.DEPLOYMENT_URL) if o],
    allow_origin_regex=r"^http://localhost:\d+$|^https://.*\.vercel\.app$",
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Cache-Control"],
    expose_headers=["Content-Type", "Authorization", "Cache-Control"],
)


@app.middleware("http")
async def request_deadline(request: Request, call_next):
    try:
        return await asyncio.wait_for(call_next(request), timeout=settings.REQUEST_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.error("Request timeout: %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=504,
            content=error_body("Request timeout", "The request took too long to process"),
        )


# Error handlers

@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (404, 405) and exc.detail in ("Not Found", "Method Not Allowed"):
        body = error_body("Not Found", f"Cannot {request.method} {request.url.path}")
        return JSONResponse(status_code=404, content=body)
    body = error_body(exc.detail, getattr(exc, "details", None))
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body),
                        headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    missing = any(e.get("type") in ("missing", "string_too_short") for e in errors)
    message = "Missing required fields" if missing else "Invalid request"
    return JSONResponse(status_code=400, content=jsonable_encoder(error_body(message, errors)))


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Global error handler: %s %s", request.method, request.url.path)
    if isinstance(exc, OperationFailure) and exc.code == UNAUTHORIZED:
        return JSONResponse(status_code=403, content=error_body("Permission denied", str(exc)))
    if isinstance(exc, InvalidId) or (isinstance(exc, OperationFailure) and exc.code == BAD_VALUE):
        return JSONResponse(status_code=400, content=error_body("Invalid request", str(exc)))
    details = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)) if settings.DEBUG else None
    return JSONResponse(status_code=500, content=error_body(str(exc) or "Internal Server Error", details))


# Routes
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(cars.router, prefix="/api/cars", tags=["cars"])
app.include_router(brands.router, prefix="/api/brands", tags=["brands"])
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])


@app.get("/")
def root(verifier: TokenVerifier = Depends(get_verifier)):
    return {
        "message": "Car Rental API",
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "identityProvider": "initialized" if verifier.initialized else "not initialized",
    }


@app.get("/test")
def database_diagnostics():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.DATABASE_URL else "❌ Not Set",
        "database_name": settings.DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        db = get_db()
        response["connection_status"] = "Connected"
        response["collections"] = db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
