from __future__ import annotations

"""
FastAPI application for the spotlight search engine.

- /calculate answers arithmetic queries synchronously
- /search runs one ranking session to completion and returns the final top-K
- /search/stream emits every snapshot as one NDJSON line while the session runs
- /launch opens a result with the desktop's default handler
"""

import asyncio
from typing import AsyncIterator, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from loguru import logger
from pydantic import BaseModel, Field

from .calculator import calculator_result
from .config import (
    CalcResponse,
    HealthResponse,
    LaunchResponse,
    SearchResponse,
    SearchSettings,
)
from .launcher import launch_path, path_to_uri
from .mapping import snapshot_to_response
from .path_source import PathSource, build_path_source
from .pipeline_types import RankerSnapshot
from .session import SearchController
from .utils.text_clean import clean_query_text


# -----------------------
# Pipeline
# -----------------------

def _source_for(query: str, settings: SearchSettings) -> PathSource:
    # looked up at call time so tests can swap the producer
    return build_path_source(query, settings)


async def run_query(query: str, settings: Optional[SearchSettings] = None) -> SearchResponse:
    """Calculator result plus the final ranked snapshot for ``query``."""
    query = clean_query_text(query)
    calc = calculator_result(query)
    if not query:
        return SearchResponse(query=query, calc_result=calc)

    delivered: List[RankerSnapshot] = []
    controller = SearchController(delivered.append, _source_for, settings or _settings)
    controller.start(query)
    final = await controller.wait()
    if final is None and delivered:
        final = delivered[-1]
    return snapshot_to_response(final, query=query, calc_result=calc)


async def stream_query(query: str, settings: Optional[SearchSettings] = None) -> AsyncIterator[str]:
    """NDJSON lines, one per snapshot; the calculator result rides on each."""
    query = clean_query_text(query)
    calc = calculator_result(query)
    controller = SearchController(lambda snap: None, _source_for, settings or _settings)
    session = controller.new_session(query)
    emitted = 0
    try:
        async for snap in session.snapshots():
            emitted += 1
            yield snapshot_to_response(snap, query=query, calc_result=calc).model_dump_json() + "\n"
    finally:
        if not session.closed:
            session.cancel()
    if emitted == 0:
        yield snapshot_to_response(None, query=query, calc_result=calc).model_dump_json() + "\n"


# -----------------------
# FastAPI app + startup
# -----------------------

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_settings = SearchSettings()


@app.on_event("startup")
def startup_event() -> None:
    global _settings
    _settings = SearchSettings()
    roots = _settings.valid_search_dirs()
    logger.info(
        "Search settings: max_results={} display_every={} hard_cap={} depth={}",
        _settings.max_results, _settings.display_every, _settings.hard_cap, _settings.max_depth,
    )
    if roots:
        logger.info("Searching {} root(s): {}", len(roots), ", ".join(str(r) for r in roots))
    else:
        logger.warning("None of the configured search directories exist")


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="healthy")


class QueryRequest(BaseModel):
    query: str = Field(..., min_length=1)


class LaunchRequest(BaseModel):
    path: str = Field(..., min_length=1)


def _require_query(req: QueryRequest) -> str:
    query = clean_query_text(req.query)
    if not query:
        raise HTTPException(status_code=422, detail="Query must be non-empty")
    return query


@app.post("/calculate", response_model=CalcResponse)
def calculate(req: QueryRequest) -> CalcResponse:
    query = _require_query(req)
    return CalcResponse(query=query, result=calculator_result(query))


@app.post("/search", response_model=SearchResponse)
async def search(req: QueryRequest) -> SearchResponse:
    query = _require_query(req)
    return await run_query(query)


@app.post("/search/stream")
async def search_stream(req: QueryRequest) -> StreamingResponse:
    query = _require_query(req)
    return StreamingResponse(stream_query(query), media_type="application/x-ndjson")


@app.post("/launch", response_model=LaunchResponse)
def launch(req: LaunchRequest) -> LaunchResponse:
    path = req.path.strip()
    if not path:
        raise HTTPException(status_code=422, detail="Path must be non-empty")
    launched = launch_path(path)
    return LaunchResponse(path=path, uri=path_to_uri(path), launched=launched)


# -----------------------
# CLI convenience
# -----------------------

def search_single_query(query: str) -> list[str]:
    response = asyncio.run(run_query(query))
    return [item.path for item in response.ranked]
