"""FastAPI service that turns an article URL into a StoryRecord."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import configure_logging, get_settings
from .errors import InvalidInputError, StoryError
from .pipeline import StoryPipeline

logger = logging.getLogger(__name__)

app = FastAPI(title="Smart Story Suite")


def _add_cors(app: FastAPI) -> None:
    """Allow the browser front end to call the API during local development."""
    allow_all = os.getenv("CORS_ALLOW_ALL", "true").lower() == "true"
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    allow_credentials = (
        os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
    )
    if allow_all or not origins:
        origins = ["*"]
    if origins == ["*"] and allow_credentials:
        # Starlette/FastAPI disallow wildcard origins when credentials are enabled.
        allow_credentials = False
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_add_cors(app)


@lru_cache(maxsize=1)
def get_pipeline() -> StoryPipeline:
    """Build the shared pipeline once; settings are read-only afterwards."""
    return StoryPipeline(get_settings())


@app.exception_handler(RequestValidationError)
async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Request body must be a JSON object with an articleUrl."},
    )


def _article_url_from_payload(payload: Dict[str, Any]) -> str:
    article_url = payload.get("articleUrl")
    if not article_url or not isinstance(article_url, str):
        raise InvalidInputError("Article URL is required")
    return article_url


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/process-article")
def process_article_status(
    pipeline: StoryPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Report whether the completion-service key is configured; no side effects."""
    if pipeline.settings.api_key_configured:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "message": "API route active. API key seems configured. "
                "Use POST to process an article.",
                "configured": True,
            },
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "message": "API route active, but config error: OPENAI_API_KEY is not set. "
            "Use POST to process an article.",
            "configured": False,
        },
    )


@app.post("/api/process-article")
def process_article(
    payload: Dict[str, Any] = Body(...),
    pipeline: StoryPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """
    End-to-end processing: fetch -> extract -> analyze -> recover JSON -> assemble.
    Returns the StoryRecord with camelCase keys; every failure maps to one status.
    """
    try:
        article_url = _article_url_from_payload(payload)
        story = pipeline.process(article_url)
    except StoryError as exc:
        logger.warning(
            "Request failed with %s (%s): %s",
            exc.status_code,
            type(exc).__name__,
            exc.message,
        )
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    except Exception as exc:
        logger.exception("Unexpected error while processing article")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal server error occurred.",
        ) from exc

    return JSONResponse(status_code=status.HTTP_200_OK, content=story.to_payload())


def serve(host: str = "0.0.0.0", port: int = 8000, reload: bool = False) -> None:
    """Run the API under uvicorn; used by `story-suite serve`."""
    import uvicorn

    configure_logging(get_settings().log_level)
    uvicorn.run("story_suite.server:app", host=host, port=port, reload=reload)
