# main.py (FastAPI) - Tic-Tac-Toe vs Gemini game server
import logging
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .backend.ai_service import GeminiMoveProvider
from .backend.config import Settings, load_settings
from .backend.framework import MoveProvider
from .main_server.session_routes import SessionRegistry, router as session_router

# ========== logging ==========
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    provider_factory: Optional[Callable[[], MoveProvider]] = None,
) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    if provider_factory is None:
        def provider_factory() -> MoveProvider:
            return GeminiMoveProvider(settings)

    app = FastAPI(title="Tic-Tac-Toe vs Gemini")
    app.state.registry = SessionRegistry(settings, provider_factory)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(session_router)

    if not settings.has_credential:
        logger.warning("GEMINI_API_KEY is not set; the AI will play random moves")
    logger.info(f"model={settings.model} min_delay={settings.ai_min_delay}s timeout={settings.ai_timeout}s")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("tictactoe_ai.main:app", host="0.0.0.0", port=8000)
