from pydantic import BaseModel

from docstore.models.document import Ttl


class TtlUpdateRequest(BaseModel):
    """Expire every version of a message status after ``ttl`` seconds, -1 keeps them forever."""

    ttl: Ttl
