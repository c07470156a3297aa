"""FastAPI routing layer: every HTTP request is handed to the dispatcher."""
from __future__ import annotations

from typing import List, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from ..models.api import DispatchRequest
from ..services.dependencies import get_controller
from ..services.lifecycle import LifecycleController, ServiceUnavailableError

router = APIRouter()

_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]
_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _collect_arguments(request: Request) -> List[Tuple[str, str]]:
    arguments = list(request.query_params.multi_items())
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        for name, value in form.multi_items():
            # Uploaded files are not arguments of this protocol.
            if isinstance(value, str):
                arguments.append((name, value))
    return arguments


@router.api_route("/{path:path}", methods=_METHODS, response_class=PlainTextResponse)
async def dispatch(
    request: Request,
    controller: LifecycleController = Depends(get_controller),
) -> PlainTextResponse:
    dispatch_request = DispatchRequest(
        method=request.method,
        path=request.url.path,
        arguments=await _collect_arguments(request),
    )
    try:
        reply = await controller.submit(dispatch_request)
    except ServiceUnavailableError as exc:
        return PlainTextResponse(f"error: {exc}", status_code=503)

    return PlainTextResponse(reply.body, status_code=reply.status_code, media_type=reply.media_type)


__all__ = ["router"]
