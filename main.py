from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from database import get_settings, init_db
from api import auth, rooms
from core.identity import IdentityProvider
from core.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 建立帳號資料表（房間只存在記憶體，不需要）
    init_db()
    yield


def create_app(settings=None, registry=None, identity=None) -> FastAPI:
    """
    建立 FastAPI app

    registry / identity 由 app 持有（app.state），
    測試時可以傳入獨立的 instance。
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Watch Party API",
        description="Shared rooms with synchronized video playback and chat",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.registry = registry or RoomRegistry(
        event_limit=settings.event_log_limit,
        chat_limit=settings.chat_history_limit,
    )
    app.state.identity = identity or IdentityProvider(ttl=settings.session_ttl_seconds)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure this properly in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # 輸入錯誤統一回 400
        return JSONResponse(status_code=400, content={"detail": "Invalid request"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal error"})

    # Include routers
    app.include_router(auth.router)
    app.include_router(rooms.router)

    @app.get("/")
    def root():
        return {"message": "Watch Party API", "status": "ok"}

    @app.get("/health")
    def health():
        return {"status": "healthy", "rooms": len(app.state.registry)}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
