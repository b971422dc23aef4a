"""Status of a message, stored as a version chain keyed by ``messageId``."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from docstore.models.document import NonEmptyString, RetrievedVersionedModelTTL

MESSAGE_STATUS_COLLECTION_NAME = "message-status"
MESSAGE_STATUS_MODEL_ID_FIELD = "messageId"
MESSAGE_STATUS_MODEL_PK_FIELD = "messageId"


class MessageStatusValue(str, Enum):
    ACCEPTED = "ACCEPTED"
    THROTTLED = "THROTTLED"
    FAILED = "FAILED"
    PROCESSED = "PROCESSED"
    REJECTED = "REJECTED"


class RejectionReason(str, Enum):
    SERVICE_NOT_ALLOWED = "SERVICE_NOT_ALLOWED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    UNKNOWN = "UNKNOWN"


class MessageStatus(BaseModel):
    """
    Payload of one status version.

    ``status`` tells the two variants apart: a REJECTED status always carries a
    rejection reason (UNKNOWN when none was given), any other status never does.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message_id: NonEmptyString
    status: MessageStatusValue
    updated_at: datetime
    is_archived: bool = False
    is_read: bool = False
    fiscal_code: str | None = None
    rejection_reason: RejectionReason | None = Field(default=None, alias="rejection_reason")

    @model_validator(mode="after")
    def check_rejection_reason(self) -> "MessageStatus":
        if self.status == MessageStatusValue.REJECTED:
            if self.rejection_reason is None:
                self.rejection_reason = RejectionReason.UNKNOWN
        elif self.rejection_reason is not None:
            raise ValueError(f"rejection_reason is only allowed for status {MessageStatusValue.REJECTED.value}")
        return self


class RetrievedMessageStatus(MessageStatus, RetrievedVersionedModelTTL):
    pass


class MessageStatusUpdate(BaseModel):
    """A status change applied on top of the latest version."""

    status: MessageStatusValue
    rejection_reason: RejectionReason | None = None
