from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from freight_core.db import filters as _filters  # noqa: F401  (register SQLAlchemy listing scope)
from freight_core.db.init_db import init_db
from freight_core.errors import CoreError
from freight_core.logging_config import configure_app_logging
from freight_core.routers import account, admin, booking_requests, health, loads, trips, trucks
from freight_core.security.capability import CapabilityResolver, RoleCapability
from freight_core.security.config import PolicyConfig, load_policy_config
from freight_core.security.dependencies import enforce_security
from freight_core.settings import get_settings

logger = logging.getLogger(__name__)


def _error_body(message: object) -> dict[str, object]:
    return {"error": message}


async def _core_error_handler(request: Request, exc: CoreError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc)))


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.detail), headers=exc.headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(_error_body(message)),
    )


def create_app(
    policy: PolicyConfig | None = None,
    capability_resolver: CapabilityResolver | None = None,
) -> FastAPI:
    """
    Build the API.

    `policy` and `capability_resolver` can be injected (tests, embedding);
    otherwise the policy file named by settings is loaded at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        if getattr(app.state, "policy", None) is None:
            app.state.policy = load_policy_config(settings.resolved_policy_config_path())
            logger.info("Loaded policy config: %s", settings.resolved_policy_config_path())

        init_db(
            seed=settings.seed_demo_data,
            expiry_hours=app.state.policy.model.booking.default_expiry_hours,
        )
        logger.info("Database initialized (tables ensured, seed=%s)", settings.seed_demo_data)

        yield

    # Global dependency: authentication and route rules apply to every handler.
    app = FastAPI(title="freight-core", dependencies=[Depends(enforce_security)], lifespan=lifespan)
    app.state.policy = policy
    app.state.capability_resolver = capability_resolver or RoleCapability()

    app.add_exception_handler(CoreError, _core_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(health.router)
    app.include_router(account.router)
    app.include_router(loads.router)
    app.include_router(trips.router)
    app.include_router(trucks.router)
    app.include_router(booking_requests.load_requests)
    app.include_router(booking_requests.truck_requests)
    app.include_router(booking_requests.match_proposals)
    app.include_router(admin.router)

    return app


app = create_app()
