import logging

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

load_dotenv("noobwriter/.env")

from noobwriter import containers  # noqa: E402
from noobwriter.config import settings  # noqa: E402
from noobwriter.core.exception_handlers import (  # noqa: E402
    handle_base_api_exception,
    handle_http_exception,
    handle_unexpected_error,
    handle_validation_error,
)
from noobwriter.core.exceptions import BaseAPIException  # noqa: E402
from noobwriter.logging_config import setup_logging  # noqa: E402
from noobwriter.routers import (  # noqa: E402
    admin_router,
    exchange_router,
    health_router,
    payout_router,
    purchase_router,
    tip_router,
    unlock_router,
    wallet_router,
)

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
    )
    app.container = containers.Container()  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"Request: {request.method} {request.url}")
        response = await call_next(request)
        logger.info(f"Response: {response.status_code}")
        return response

    app.add_exception_handler(BaseAPIException, handle_base_api_exception)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(health_router.router)
    for module in (
        wallet_router,
        tip_router,
        unlock_router,
        payout_router,
        exchange_router,
        purchase_router,
        admin_router,
    ):
        app.include_router(module.router, prefix=settings.API_V1_STR)

    return app


app = create_app()

handler = Mangum(app)
