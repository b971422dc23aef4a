"""Operations and responses of transactional batches."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

# a transactional batch accepts at most 100 operations on one partition key
MAX_BATCH_OPERATIONS = 100


class PatchOperation(BaseModel):
    """A single JSON-patch step. ``add`` creates the path or overwrites its value."""

    op: Literal["add", "set", "replace", "remove", "incr"]
    path: str
    value: Any = None


class BatchOperation(BaseModel):
    """A patch of one document inside a transactional batch."""

    id: str
    operation_type: Literal["patch"] = "patch"
    patch_operations: list[PatchOperation] = []

    @classmethod
    def patch(cls, document_id: str, operations: list[PatchOperation]) -> "BatchOperation":
        return cls(id=document_id, patch_operations=operations)


class BatchResponse(BaseModel):
    """Raw outcome of a batch: overall status plus one result dict per operation."""

    code: int
    result: list[dict] = []


class BatchOperationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status_code: NonNegativeInt = Field(alias="statusCode")
    etag: str | None = Field(default=None, alias="eTag")


class BatchResult(BaseModel):
    """A batch response whose per-operation results passed validation."""

    code: int
    result: list[BatchOperationResult] = []
