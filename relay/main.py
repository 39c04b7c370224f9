from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from relay.config import settings
from relay.errors import RelayError
from relay.routes import router as api_router
from review_ui.views import router as ui_router


logging.basicConfig(
      level=settings.log_level.upper(),
      format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
  )
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Relay starting ({settings.environment}), GitHub CLI binary: {settings.gh_binary}")
    yield
    logger.info("Relay shutting down")


app = FastAPI(
    title="PR Review Relay",
    description="Review and merge GitHub pull requests through the GitHub CLI",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": "Invalid request body"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": "Something went wrong!"})


@app.get("/health")
def health():
    return {"status": "healthy"}


app.include_router(api_router)
app.include_router(ui_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "relay.main:app",
        host=settings.service_host,
        port=settings.service_port,
        reload=not settings.is_production,
    )
