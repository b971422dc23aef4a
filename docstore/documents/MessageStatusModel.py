from datetime import datetime, timezone

from docstore.clients.store.ContainerInterface import ContainerInterface
from docstore.documents.VersionedDocumentModel import VersionedDocumentModel, inc_version
from docstore.documents.VersionedTTLDocumentModel import VersionedTTLDocumentModel
from docstore.helper.HelperConfig import HelperConfig
from docstore.models.document import SYSTEM_FIELDS
from docstore.models.message_status import (
    MESSAGE_STATUS_MODEL_ID_FIELD,
    MessageStatus,
    MessageStatusUpdate,
    RetrievedMessageStatus,
)
from docstore.models.result import Err, Result


class MessageStatusModel(VersionedTTLDocumentModel[MessageStatus, RetrievedMessageStatus]):
    """
    Version chains of message statuses, one chain per ``messageId``.

    The container must be partitioned by "/messageId".
    """

    def __init__(self, helper_config: HelperConfig, container: ContainerInterface):
        super().__init__(
            VersionedDocumentModel(
                helper_config=helper_config,
                container=container,
                new_item_model=MessageStatus,
                retrieved_item_model=RetrievedMessageStatus,
                model_id_key=MESSAGE_STATUS_MODEL_ID_FIELD,
            )
        )

    async def update_status(
        self,
        message_id: str,
        update: MessageStatusUpdate,
        fiscal_code: str | None = None,
    ) -> Result[RetrievedMessageStatus]:
        """
        Appends a version carrying the new status on top of the latest one.

        Flags of the latest version (read, archived) are kept. Unknown messages start
        a new chain with both flags unset. The version after the one read is written,
        so a version appended in between makes the update fail with 409.
        """
        last = await self.find_last_version_by_model_id((message_id,))
        if isinstance(last, Err):
            return last
        if last.value is not None:
            base = last.value.model_dump(exclude=set(SYSTEM_FIELDS) | {"rejection_reason"})
        else:
            base = {"message_id": message_id, "fiscal_code": fiscal_code, "is_archived": False, "is_read": False}
        document = MessageStatus.model_validate({
            **base,
            "status": update.status,
            "rejection_reason": update.rejection_reason,
            "updated_at": datetime.now(timezone.utc),
        })
        version = 0 if last.value is None else inc_version(last.value.version)
        return await self.versioned_model.create_new_version(document, version)
