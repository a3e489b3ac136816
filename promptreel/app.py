import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from promptreel.api.routes import router as api_router
from promptreel.config import Settings, get_settings
from promptreel.logging_config import configure_logging
from promptreel.services.heygen_client import HeyGenClient

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, heygen_client: Optional[HeyGenClient] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        client = heygen_client or HeyGenClient(
            api_key=settings.heygen_api_key.get_secret_value(),
            base_url=settings.heygen_base_url,
            timeout=settings.request_timeout_sec,
        )
        application.state.heygen_client = client
        logger.info("Proxying video requests to %s", settings.heygen_base_url)
        yield
        await client.close()

    app = FastAPI(title="Promptreel Video Generator", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app
