import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from walletpass.api import api_router
from walletpass.api.deps import get_pass_coordinator
from walletpass.core.config import settings
from walletpass.core.errors import (
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    RenderError,
    ValidationError,
    WalletPassError,
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ValidationError: 400,
    InvalidArgumentError: 400,
    NotFoundError: 404,
    InvalidTransitionError: 409,
    RenderError: 500,
}

RENDER_HINT = (
    "Wallet credentials may be missing or invalid. Check the Apple certificate paths "
    "and the Google service account configuration."
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown
    await get_pass_coordinator().close()


async def wallet_error_handler(request: Request, exc: WalletPassError) -> JSONResponse:
    status_code = next(
        (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)),
        500,
    )
    body = {"detail": exc.message}
    if isinstance(exc, RenderError):
        logger.error(f"[API] Render failed on {request.url.path}: {exc.message}")
        body["hint"] = RENDER_HINT
    return JSONResponse(status_code=status_code, content=body)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Walletpass",
        description="Apple Wallet and Google Wallet pass lifecycle API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(WalletPassError, wallet_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Include all routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
