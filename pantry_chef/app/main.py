import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from pantry_chef.app.api.routes import api_router
from pantry_chef.app.core.config import get_settings

logger = logging.getLogger(__name__)

_REQUEST_SOURCES = {"body", "query", "path", "header"}


def _describe_error(err: dict) -> dict:
    loc = [str(part) for part in err.get("loc", []) if part is not None]
    source = loc.pop(0) if loc and loc[0] in _REQUEST_SOURCES else None
    return {
        "field": ".".join(loc) or None,
        "source": source,
        "message": err.get("msg", "Invalid value"),
    }


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [_describe_error(err) for err in exc.errors()]
    path = request.url.path
    logger.info("Rejected %s %s: %d invalid field(s)", request.method, path, len(details))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "validation_error",
            "message": f"{len(details)} invalid field(s) in request to {path}.",
            "path": path,
            "details": details,
        },
    )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Pantry Chef", version="0.1.0")
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(api_router)

    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; generation endpoints will fail until it is configured")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
