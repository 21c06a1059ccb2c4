import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routers import audit, auth, dashboard, messages, navigation, orders, payouts, products, vendors
from .utils.logging import configure_logging

logger = logging.getLogger(__name__)

ROUTERS = (auth, navigation, vendors, products, orders, payouts, messages, dashboard, audit)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME, redirect_slashes=False)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for module in ROUTERS:
        app.include_router(module.router, prefix=settings.API_PREFIX)

    @app.get("/health")
    def health():
        return {"status": "ok", "app": settings.APP_NAME}

    logger.info("%s ready, routes under %s", settings.APP_NAME, settings.API_PREFIX)
    return app


app = create_app()
