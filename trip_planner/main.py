import logging
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trip_planner.api.routers.cities import router as cities_router
from trip_planner.api.routers.debug import router as debug_router
from trip_planner.api.routers.generate import router as generate_router
from trip_planner.api.routers.places import router as places_router
from trip_planner.core.places_service import PlacesService
from trip_planner.core.repository import MongoRepo
from trip_planner.core.settings import Settings, get_settings

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        {"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None)
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"[request] Rejected {request.url.path}: {exc.errors()}")
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


def create_app(
    settings: Settings | None = None,
    repo: MongoRepo | None = None,
    places: PlacesService | None = None,
    llm: Any | None = None,
) -> FastAPI:
    application = FastAPI(title="AI Trip Planner")

    settings = settings or get_settings()

    # CORS: localhost dev server plus any origins from ALLOWED_ORIGINS
    allowed_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    if settings.allowed_origins:
        allowed_origins.extend(
            [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
        )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Error bodies are {"error": "..."} rather than FastAPI's {"detail": "..."}
    application.add_exception_handler(HTTPException, http_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)

    # Shared dependencies; anything left as None is built on first use
    application.state.settings = settings
    application.state.repo = repo
    application.state.places = places
    application.state.llm = llm

    @application.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    application.include_router(generate_router)
    application.include_router(cities_router)
    application.include_router(places_router)
    application.include_router(debug_router)
    return application


app = create_app()
