"""Response shapes of the message status API."""

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from docstore.models.errors import ErrorResponse
from docstore.models.result import Err


class QueryFailedResponse(BaseModel):
    detail: str = "query failed"
    kind: str
    code: int | None = None


class TtlUpdatedResponse(BaseModel):
    message_id: str
    updated: int


def error_to_response(result: Err, status_code: int = 500) -> JSONResponse:
    """Turns a failed store operation into the generic "query failed" response.

    The store status code is only included for ERROR_RESPONSE failures.
    """
    error = result.error
    body = QueryFailedResponse(
        kind=error.kind.value,
        code=error.code if isinstance(error, ErrorResponse) else None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))
