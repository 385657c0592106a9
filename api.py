import io
import sys
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, UploadFile, HTTPException
from fastapi.responses import Response
from loguru import logger
import uvicorn

from errors import ArgumentError
from pagestream import StreamSink
from selector import DEFAULT_PAGE_LEN, PAGE_LIMIT, build_config, select_pages

LOG_LEVEL = "INFO"


def setup_logging(level: str = LOG_LEVEL):
    """Route loguru to stderr at `level`, replacing its DEBUG default."""
    logger.remove()
    logger.add(sys.stderr, level=level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield


app = FastAPI(title="selpg API", version="1.0.0", lifespan=lifespan)


@app.post("/select-pages")
def select_pages_endpoint(
    file: UploadFile = File(...),
    start_page: int = 1,
    end_page: Optional[int] = None,
    page_len: int = DEFAULT_PAGE_LEN,
    form_feed: bool = False,
):
    """
    Return an inclusive range of pages from an uploaded text file.

    The body of the response is the selected bytes, unchanged. Page counts
    and range warnings travel in the X-Pages-Read, X-Bytes-Written and
    X-Selpg-Warning headers. Without **end_page** the selection runs to the
    last page and no end-of-input warning is reported.
    """
    try:
        config = build_config(
            start_page,
            PAGE_LIMIT if end_page is None else end_page,
            page_len=page_len,
            form_feed=form_feed,
        )
    except ArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))

    selected = io.BytesIO()
    report = select_pages(config, file.file, StreamSink(selected, name="response"))

    warnings = report.warnings()
    if end_page is None and report.end_overrun:
        warnings = []

    headers = {
        "X-Pages-Read": str(report.pages_started),
        "X-Bytes-Written": str(report.bytes_written),
    }
    if warnings:
        headers["X-Selpg-Warning"] = "; ".join(warnings)
    logger.info("{}: pages {}-{} -> {} bytes", file.filename, config.start_page,
                end_page or "end", report.bytes_written)

    return Response(content=selected.getvalue(), media_type="text/plain", headers=headers)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
