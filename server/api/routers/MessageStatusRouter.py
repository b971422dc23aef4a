"""Message status router: latest status, paged version history, status updates and expiry."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from docstore.documents.MessageStatusModel import MessageStatusModel
from docstore.helper.async_iterators import filter_async_iterator, flatten_async_iterator, map_async_iterator
from docstore.helper.paging import build_cursor_query, fill_page
from docstore.models.document import FeedOptions, QueryParameter, QuerySpec
from docstore.models.errors import STORE_FAILURES, to_error_response
from docstore.models.message_status import MESSAGE_STATUS_MODEL_PK_FIELD, MessageStatusUpdate
from docstore.models.result import Err, is_valid
from server.dependencies.auth import verify_api_key
from server.models.requests import TtlUpdateRequest
from server.models.responses import TtlUpdatedResponse, error_to_response

message_status_router = APIRouter(prefix="/messages", dependencies=[Depends(verify_api_key)], tags=["MessageStatus"])


def _get_model(request: Request) -> MessageStatusModel:
    return request.app.state.message_status_model


@message_status_router.get("/{message_id}/status")
async def get_status(request: Request, message_id: str) -> JSONResponse:
    """Return the latest status version of a message.

    Raises:
        HTTPException: 404 if the message has no status yet.
    """
    result = await _get_model(request).find_last_version_by_model_id((message_id,))
    if isinstance(result, Err):
        return error_to_response(result)
    if result.value is None:
        raise HTTPException(status_code=404, detail=f"No status for message {message_id}")
    return JSONResponse(content=result.value.model_dump(mode="json", by_alias=True, exclude_none=True))


@message_status_router.get("/{message_id}/status/versions")
async def get_status_versions(
    request: Request,
    message_id: str,
    page_size: int = Query(default=20, ge=1, le=100),
    maximum_id: str | None = None,
    minimum_id: str | None = None,
) -> JSONResponse:
    """Return one page of status versions, newest first.

    Pass the ``next`` cursor of a page as ``maximum_id`` to get the following page.
    Invalid version documents are skipped.
    """
    query = build_cursor_query(
        QuerySpec(
            query=f"SELECT * FROM m WHERE m.{MESSAGE_STATUS_MODEL_PK_FIELD} = @messageId",
            parameters=[QueryParameter(name="@messageId", value=message_id)],
        ),
        partition_field=MESSAGE_STATUS_MODEL_PK_FIELD,
        maximum_id=maximum_id,
        minimum_id=minimum_id,
    )
    pages = _get_model(request).get_query_iterator(
        query, FeedOptions(max_item_count=page_size, partition_key=message_id)
    )
    items = map_async_iterator(filter_async_iterator(flatten_async_iterator(pages), is_valid), lambda v: v.value)
    try:
        page = await fill_page(items, page_size)
    except STORE_FAILURES as e:
        return error_to_response(Err(to_error_response(e)))
    return JSONResponse(content=page.to_response())


@message_status_router.put("/{message_id}/status")
async def put_status(request: Request, message_id: str, body: MessageStatusUpdate) -> JSONResponse:
    """Append a new status version for a message."""
    request.app.state.logging.info("Status update for message %s: %s", message_id, body.status.value)
    try:
        result = await _get_model(request).update_status(message_id, body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(result, Err):
        return error_to_response(result)
    return JSONResponse(content=result.value.model_dump(mode="json", by_alias=True, exclude_none=True))


@message_status_router.put("/{message_id}/status/ttl")
async def put_status_ttl(request: Request, message_id: str, body: TtlUpdateRequest) -> JSONResponse:
    """Set the ttl of every status version of a message."""
    result = await _get_model(request).update_ttl_for_all_versions((message_id,), body.ttl)
    if isinstance(result, Err):
        return error_to_response(result)
    return JSONResponse(content=TtlUpdatedResponse(message_id=message_id, updated=result.value).model_dump())
