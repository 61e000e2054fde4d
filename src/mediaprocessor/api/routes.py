"""API route definitions."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from mediaprocessor.api.dependencies import get_compute_pool, get_storage_client, verify_api_key
from mediaprocessor.api.schemas import ErrorResponse, HealthResponse
from mediaprocessor.storage.client import StorageProxyClient  # noqa: TC001
from mediaprocessor.transform.params import OutputFormat, TransformParams
from mediaprocessor.transform.pipeline import transform
from mediaprocessor.transform.pool import ComputePool  # noqa: TC001
from mediaprocessor.validation.key import validate_key
from mediaprocessor.validation.params import validate_params

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_CONTROL_IMMUTABLE = "public, max-age=31536000, immutable"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(pool: Annotated[ComputePool, Depends(get_compute_pool)]) -> HealthResponse:
    """Return service health status."""
    return HealthResponse(
        status="ok",
        concurrent_requests=pool.active_count,
        queue_depth=pool.queue_depth,
    )


@router.get(
    "/{key:path}",
    dependencies=[Depends(verify_api_key)],
    response_class=Response,
    responses={
        status.HTTP_200_OK: {"content": {fmt.content_type: {} for fmt in OutputFormat}},
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ErrorResponse},
        status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
    summary="Fetch and transform an image",
)
async def transform_media(
    key: str,
    storage: Annotated[StorageProxyClient, Depends(get_storage_client)],
    pool: Annotated[ComputePool, Depends(get_compute_pool)],
    w: Annotated[int | None, Query(description="Maximum output width")] = None,
    h: Annotated[int | None, Query(description="Maximum output height")] = None,
    f: Annotated[str | None, Query(description="Output format: jpg, png, webp or avif")] = None,
    q: Annotated[int | None, Query(description="Quality 1-100 for lossy formats")] = None,
) -> Response:
    """Fetch ``key`` from storage and return it re-encoded.

    The image is always decoded and re-encoded, even without parameters, so
    the response never carries the source's EXIF or XMP metadata.
    """
    validate_key(key)
    output_format = OutputFormat.parse(f) if f is not None else None
    validate_params(w, h, q)
    params = TransformParams.create(width=w, height=h, format=output_format, quality=q)

    logger.info("Fetching %s from storage proxy", key)
    data = await storage.fetch(key)

    logger.info("Transforming %s (w=%s, h=%s, f=%s, q=%s)", key, w, h, f, params.quality)
    result = await pool.run(transform, data, params)
    logger.info(
        "Transformed %s -> %dx%d %s (%d bytes)",
        key,
        result.width,
        result.height,
        result.content_type,
        len(result.content),
    )

    return Response(
        content=result.content,
        media_type=result.content_type,
        headers={"Cache-Control": CACHE_CONTROL_IMMUTABLE},
    )
