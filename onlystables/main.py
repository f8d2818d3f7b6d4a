from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, parse_payment, transactions
from .api.dependencies import ServiceContainer
from .config import Settings, settings
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings
    setup_logging(app_settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = ServiceContainer.build(app_settings)
        try:
            yield
        finally:
            await app.state.services.aclose()

    app = FastAPI(
        title="onlystables API",
        description="Natural-language stablecoin payments: parsing and transaction history",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(parse_payment.router, tags=["Parsing"])
    app.include_router(transactions.router, tags=["Transactions"])

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "onlystables API",
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/healthz",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "onlystables.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
