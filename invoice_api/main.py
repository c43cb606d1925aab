from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request

from invoice_api.core.config import settings
from invoice_api.routes.health import router as health_router
from invoice_api.routes.invoices import router as invoices_router
from invoice_digitizer.logging_config import logger


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.api_name,
        version=settings.api_version,
        description=(
            "Invoice image upload API. "
            "Extraction is delegated to an OpenAI vision model and the totals are reconciled locally."
        ),
    )

    @app.get("/")
    def root() -> dict[str, str]:
        return {"message": "hello world", "service": settings.api_name}

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_: Request, exc: Exception):  # type: ignore[no-untyped-def]
        logger.error("Unhandled API error: %s", exc.__class__.__name__, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "detail": "Unexpected server error.",
                "type": exc.__class__.__name__,
            },
        )

    app.include_router(health_router)
    app.include_router(invoices_router)
    return app


app = create_app()
