"""FastAPI application factory for Armory-Engine."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from armory_engine.common.config import ArmorySettings, get_settings
from armory_engine.common.exceptions import ArmoryError
from armory_engine.common.logging import setup_logging
from armory_engine.common.schemas import ErrorResponse, HealthResponse
from armory_engine.engine import ArmoryEngine


def create_app(settings: ArmorySettings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    engine = ArmoryEngine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        await engine.start()
        yield
        # Shutdown
        await engine.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ArmoryError)
    async def armory_error_handler(request: Request, exc: ArmoryError):
        body = ErrorResponse(
            error=exc.__class__.__name__, code=exc.code, detail=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from armory_engine.assets.router import router as assets_router
    from armory_engine.transfers.router import router as transfers_router
    from armory_engine.purchases.router import router as purchases_router
    from armory_engine.bases.router import router as bases_router
    from armory_engine.personnel.router import router as personnel_router
    from armory_engine.audit.router import router as audit_router

    prefix = settings.api_prefix
    app.include_router(assets_router, prefix=prefix, tags=["assets"])
    app.include_router(transfers_router, prefix=prefix, tags=["transfers"])
    app.include_router(purchases_router, prefix=prefix, tags=["purchases"])
    app.include_router(bases_router, prefix=prefix)
    app.include_router(personnel_router, prefix=prefix)
    app.include_router(audit_router, prefix=prefix, tags=["audit"])

    return app
