"""
FastAPI application factory for the orchid prediction service.

Creates and configures the FastAPI app, the prediction backend client,
the session store and the routes.

Run with:
    uvicorn orchid_predict.api.app:app --reload
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orchid_predict.api.routes import configure_routes, router
from orchid_predict.client.predictor import build_predictor, get_prediction_client
from orchid_predict.core.session import DEFAULT_SESSION_TIMEOUT_SECONDS, SessionStore

# Load environment variables from .env
load_dotenv()

# Logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    # Initialize the prediction backend client
    try:
        client = get_prediction_client()
        logger.info("Prediction backend: %s", os.getenv("PREDICTION_API_BASE_URL"))
    except ValueError as e:
        logger.warning(
            "Failed to initialize prediction client: %s. "
            "Session creation will fail until a backend is configured.",
            e,
        )
        client = None

    session_timeout = int(
        os.getenv("SESSION_TIMEOUT_SECONDS", str(DEFAULT_SESSION_TIMEOUT_SECONDS))
    )
    session_store = SessionStore(timeout_seconds=session_timeout)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("Orchid prediction service starting up")
        logger.info("Session timeout: %d seconds", session_timeout)
        yield
        session_store.close_all()
        if client is not None:
            await client.aclose()
        logger.info("Orchid prediction service shut down")

    application = FastAPI(
        title="Orchid Predict",
        description="Debounced pollination maturation predictions",
        version="0.1.0",
        lifespan=lifespan,
    )

    allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    predictor_factory = None
    if client is not None:
        def predictor_factory(profile):
            return build_predictor(profile, client)

    configure_routes(session_store, predictor_factory)
    application.include_router(router, prefix="/api")

    return application


# Create the app instance (used by uvicorn)
app = create_app()
