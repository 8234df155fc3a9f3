"""FastAPI application entrypoint for pyglue service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import LinkError, LinkProtocolError, ModelError, UsageError
from ..link.protocol import encode
from ..orchestrator import Orchestrator


class GenerateRequest(BaseModel):
    model: Dict[str, Any]
    header: Optional[bool] = None
    doc_mode: Optional[bool] = None


class GenerateResponse(BaseModel):
    source: str
    output: str
    link: List[str]


class LinkRequest(BaseModel):
    documents: List[str]


class LinkResponse(BaseModel):
    output: str


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing generation and linking."""

    app = FastAPI(title="pyglue Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/generate", response_model=GenerateResponse)
    async def generate(
        payload: GenerateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> GenerateResponse:
        def _run_generate() -> GenerateResponse:
            sink = orchestrator.generate_document(
                payload.model,
                is_header=payload.header,
                doc_mode=payload.doc_mode,
            )
            return GenerateResponse(
                source=sink.path,
                output=sink.text(),
                link=[encode(record) for record in sink.link],
            )

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _run_generate)

    @app.post("/link", response_model=LinkResponse)
    async def link(
        payload: LinkRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> LinkResponse:
        def _run_link() -> str:
            return orchestrator.link(payload.documents)

        loop = asyncio.get_running_loop()
        output = await loop.run_in_executor(None, _run_link)
        return LinkResponse(output=output)

    @app.exception_handler(UsageError)
    async def usage_error_handler(_: Any, exc: UsageError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": exc.message, "path": exc.path, "line": exc.line},
        )

    @app.exception_handler(ModelError)
    async def model_error_handler(_: Any, exc: ModelError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(LinkError)
    async def link_error_handler(_: Any, exc: LinkError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(LinkProtocolError)
    async def protocol_error_handler(_: Any, exc: LinkProtocolError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)
