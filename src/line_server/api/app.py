import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from line_server.config import Settings, configure_logging, settings
from line_server.errors import InvalidIndex, StoreUnavailable
from line_server.jobs.prewarm import start_prewarm_thread
from line_server.service import LineService, build_line_service

logger = logging.getLogger(__name__)

OUT_OF_RANGE = "Line index out of range"


class IndexStatus(BaseModel):
    file_path: str
    namespace: str
    chunk_size: int
    frontier: int
    end_chunk: Optional[int] = None
    total_lines: Optional[int] = None
    building_chunk: Optional[int] = None


def create_app(
    service: Optional[LineService] = None,
    config: Optional[Settings] = None,
) -> FastAPI:
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if service is None:
            configure_logging(config.log_level)
            app.state.service = build_line_service(config)
        else:
            app.state.service = service
        if config.prewarm_on_startup:
            start_prewarm_thread(app.state.service)
        else:
            app.state.service.content_cache.purge_expired()
        yield
        app.state.service.store.close()

    app = FastAPI(title="Line Server", lifespan=lifespan)

    def _service(request: Request) -> LineService:
        return request.app.state.service

    # Sync handlers: FastAPI runs them in its threadpool, so the builder's
    # backoff sleep never blocks the event loop.
    @app.get("/lines/{index}", response_class=PlainTextResponse)
    def show_line(index: int, request: Request):
        try:
            line = _service(request).fetch_line(index)
        except InvalidIndex:
            return PlainTextResponse(OUT_OF_RANGE, status_code=413)
        except StoreUnavailable as err:
            logger.error("Store unavailable while fetching line %d: %s", index, err)
            raise HTTPException(status_code=503, detail="Index store unavailable")
        if line is None:
            return PlainTextResponse(OUT_OF_RANGE, status_code=413)
        return PlainTextResponse(line)

    @app.get("/up")
    def health():
        return {"status": "ok"}

    @app.get("/status", response_model=IndexStatus)
    def status(request: Request):
        try:
            return IndexStatus(**_service(request).status())
        except StoreUnavailable as err:
            raise HTTPException(status_code=503, detail=str(err))

    return app


app = create_app()
