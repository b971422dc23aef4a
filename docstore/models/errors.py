"""Closed error taxonomy of the document store layer.

Model operations never raise for expected failures: they return ``Err`` holding
one of the error models below. The store SDK raises ``AzureError`` subclasses
(``CosmosHttpResponseError`` for error responses, ``ServiceRequestError`` and
friends for network failures); they are converted into ``ErrorResponse`` at the
model boundary.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from azure.core.exceptions import AzureError, HttpResponseError
from pydantic import BaseModel, Field


class StoreErrorKind(str, Enum):
    EMPTY_RESPONSE = "COSMOS_EMPTY_RESPONSE"
    DECODING_ERROR = "COSMOS_DECODING_ERROR"
    ERROR_RESPONSE = "COSMOS_ERROR_RESPONSE"


class EmptyResponse(BaseModel):
    """The store call succeeded but returned no resource."""

    kind: Literal[StoreErrorKind.EMPTY_RESPONSE] = StoreErrorKind.EMPTY_RESPONSE


class DecodingError(BaseModel):
    """A document returned by the store does not satisfy the expected schema.

    Attributes:
        errors: The structured validation failures as reported by pydantic.
    """

    kind: Literal[StoreErrorKind.DECODING_ERROR] = StoreErrorKind.DECODING_ERROR
    errors: list[dict[str, Any]] = []


class ErrorResponse(BaseModel):
    """The transport or database call itself failed.

    Attributes:
        code: HTTP status code of the store response, None for network failures.
        name: Short name of the failure, the exception class.
        message: Human readable description.
    """

    kind: Literal[StoreErrorKind.ERROR_RESPONSE] = StoreErrorKind.ERROR_RESPONSE
    code: int | None = None
    name: str = "Error"
    message: str = ""


StoreError = Annotated[
    Union[EmptyResponse, DecodingError, ErrorResponse],
    Field(discriminator="kind"),
]


# exceptions the model layer converts into ErrorResponse
STORE_FAILURES: tuple[type[Exception], ...] = (AzureError,)


def to_error_response(error: Exception) -> ErrorResponse:
    """Convert a store failure into an ErrorResponse, keeping the status code when known.

    Args:
        error (Exception): A CosmosHttpResponseError, another AzureError or any other exception.

    Returns:
        ErrorResponse: The classified error.
    """
    if isinstance(error, HttpResponseError):
        # CosmosHttpResponseError prefixes .message with the status code
        message = getattr(error, "http_error_message", None) or error.message
        return ErrorResponse(code=error.status_code, name=type(error).__name__, message=str(message))
    if isinstance(error, AzureError):
        return ErrorResponse(name=type(error).__name__, message=error.message)
    return ErrorResponse(name=type(error).__name__, message=str(error))
