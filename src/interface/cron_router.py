"""Cron trigger endpoint for the task generation run."""

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from src.core.config import constants, settings
from src.services.generation_service import run_generation


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


async def require_cron_secret(request: Request) -> None:
    """Reject requests without a bearer token matching the configured cron secret."""
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")

    if not settings.cron_secret:
        logger.error("cron_auth_unconfigured", extra={"path": request.url.path})
        raise HTTPException(
            status_code=constants.HTTP_UNAUTHORIZED, detail="Unauthorized", headers={"WWW-Authenticate": "Bearer"}
        )

    if scheme.lower() != "bearer" or not secrets.compare_digest(
        token.strip().encode(), settings.cron_secret.encode()
    ):
        logger.warning("cron_auth_rejected", extra={"path": request.url.path})
        raise HTTPException(
            status_code=constants.HTTP_UNAUTHORIZED, detail="Unauthorized", headers={"WWW-Authenticate": "Bearer"}
        )


@router.post("/generate-daily-tasks")
async def generate_daily_tasks(_auth: None = Depends(require_cron_secret)) -> JSONResponse:
    """Run the task generation job once and return its summary."""
    try:
        log = await run_generation()
    except Exception as e:
        logger.exception("generate_daily_tasks_failed")
        return JSONResponse(content={"error": str(e) or type(e).__name__}, status_code=constants.HTTP_SERVER_ERROR)

    return JSONResponse(content=log.to_response(), status_code=constants.HTTP_OK)
