"""
FastAPI application factory for Object Watch.

Routes:
- /api/status, /api/detections, /api/health -> loop state
- /api/config -> running configuration (API key omitted)
- /api/start, /api/stop, /api/settings -> loop control
- /api/frame.jpg -> latest frame with detection overlays

The detection loop runs on the server's event loop; it is optionally started
when the app starts and always closed when the app shuts down.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from models.config import Config
from pipeline.engine import DetectionLoop
from .routes import api


def create_app(
    detection_loop: Optional[DetectionLoop] = None,
    autostart: bool = False,
    config: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    """Create the FastAPI app and attach the detection loop and its config."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.started_at = time.time()
        if detection_loop is not None and autostart:
            detection_loop.start()
        yield
        if detection_loop is not None:
            await detection_loop.close()
            logging.info("Detection loop closed")

    app = FastAPI(
        title="Object Watch",
        version="0.1.0",
        description="Camera object detection with cooldown-gated speaker notifications",
        lifespan=lifespan,
    )
    app.state.detection_loop = detection_loop
    app.state.config = Config.from_dict(config) if config is not None else None

    # CORS for development (Vite dev server)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")

    return app
