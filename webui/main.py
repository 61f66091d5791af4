"""FastAPI application factory"""

from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from webui.api import config, control, folders, library, media, playback
from webui.api.deps import AppContext
from webui.models.schemas import ErrorResponse


def create_app(context: AppContext) -> FastAPI:
    """
    Create the HTTP application serving one media library

    Args:
        context: Storage, tracker and control service shared by all requests

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="MediaShelf",
        description="Personal media server for movies, TV shows and music",
        version="1.0.0"
    )
    app.state.context = context

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        context.logger.error(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                detail=str(exc),
                error_type=type(exc).__name__
            ).model_dump()
        )

    @app.get("/health", tags=["Health"])
    async def health():
        """Health check endpoint"""
        return {"status": "healthy"}

    # Include routers
    app.include_router(library.router)
    app.include_router(playback.router)
    app.include_router(media.router)
    app.include_router(control.router)
    app.include_router(folders.router)
    app.include_router(config.router)

    # Mount the player front-end if it is shipped next to the server
    static_dir = Path(__file__).parent / "static"
    if static_dir.exists():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")

    return app
