"""HTTP front-end.

Both routes answer 200 with a plain-text body; success and failure are told
apart only by the text. Requests are handled one at a time.
"""

from __future__ import annotations

import asyncio

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from habitgrid.config import APP_VERSION
from habitgrid.pipeline import HabitGridProcessor


def create_app(processor: HabitGridProcessor) -> FastAPI:
    app = FastAPI(title="habitgrid", version=APP_VERSION)
    # The weekly sheet has a single writer: serialize requests
    lock = asyncio.Lock()

    @app.get("/", response_class=PlainTextResponse)
    async def instructions() -> str:
        # Some clients send GET even when configured for POST; make that obvious
        return processor.handle_get()

    @app.post("/", response_class=PlainTextResponse)
    async def ingest(request: Request) -> str:
        raw = await request.body()
        async with lock:
            return await run_in_threadpool(processor.handle_post, raw)

    return app
