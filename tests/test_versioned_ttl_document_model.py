"""Unit tests for docstore.documents.VersionedTTLDocumentModel and MessageStatusModel."""

from datetime import datetime, timezone

import pytest
from azure.cosmos.exceptions import CosmosHttpResponseError
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from conftest import InMemoryContainer
from docstore.documents.MessageStatusModel import MessageStatusModel
from docstore.documents.VersionedDocumentModel import VersionedDocumentModel
from docstore.documents.VersionedTTLDocumentModel import VersionedTTLDocumentModel
from docstore.models.document import TTL_NEVER_EXPIRE, RetrievedVersionedModelTTL
from docstore.models.errors import ErrorResponse
from docstore.models.message_status import (
    MessageStatus,
    MessageStatusUpdate,
    MessageStatusValue,
    RejectionReason,
)
from docstore.models.result import Err, Invalid, Ok, Valid


def status(message_id: str, value: MessageStatusValue = MessageStatusValue.ACCEPTED) -> MessageStatus:
    return MessageStatus(message_id=message_id, status=value, updated_at=datetime(2024, 5, 1, tzinfo=timezone.utc))


class Subscription(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    service_id: str
    fiscal_code: str
    enabled: bool


class RetrievedSubscription(Subscription, RetrievedVersionedModelTTL):
    pass


@pytest.fixture
def model(helper_config, status_container):
    return MessageStatusModel(helper_config=helper_config, container=status_container)


async def build_chain(model, message_id: str, length: int) -> None:
    for _ in range(length):
        result = await model.upsert(status(message_id))
        assert isinstance(result, Ok)


class TestFindAllVersions:
    @pytest.mark.asyncio
    async def test_sorted_by_version(self, model, status_container):
        await build_chain(model, "M1", 3)
        await build_chain(model, "M2", 2)
        # insertion order of the fake is not version order
        status_container.documents = dict(reversed(list(status_container.documents.items())))

        result = await model.find_all_versions_by_search_key(("M1",))
        assert isinstance(result, Ok)
        assert [v.value.version for v in result.value] == [0, 1, 2]
        assert all(v.value.message_id == "M1" for v in result.value)

    @pytest.mark.asyncio
    async def test_invalid_versions_sort_first(self, model, status_container):
        await build_chain(model, "M1", 2)
        status_container.insert_raw({"id": "M1-broken", "messageId": "M1", "version": 7})
        result = await model.find_all_versions_by_search_key(("M1",))
        assert isinstance(result.value[0], Invalid)
        assert [type(v) for v in result.value[1:]] == [Valid, Valid]

    @pytest.mark.asyncio
    async def test_query_failure(self, model, status_container):
        status_container.fail_next("query", CosmosHttpResponseError(status_code=503, message="unavailable"))
        result = await model.find_all_versions_by_search_key(("M1",))
        assert isinstance(result, Err)
        assert result.error.code == 503


class TestUpdateTtl:
    @pytest.mark.asyncio
    async def test_sets_ttl_on_every_version(self, model, status_container):
        await build_chain(model, "M1", 3)
        await build_chain(model, "M2", 1)
        result = await model.update_ttl_for_all_versions(("M1",), 3600)
        assert result == Ok(3)
        ttls = {doc["id"]: doc.get("ttl") for doc in status_container.documents.values()}
        assert ttls == {
            "M1-0000000000000000": 3600,
            "M1-0000000000000001": 3600,
            "M1-0000000000000002": 3600,
            "M2-0000000000000000": None,
        }
        last = await model.find_last_version_by_model_id(("M1",))
        assert last.value.ttl == 3600

    @pytest.mark.asyncio
    async def test_never_expire(self, model):
        await build_chain(model, "M1", 1)
        assert await model.update_ttl_for_all_versions(("M1",), TTL_NEVER_EXPIRE) == Ok(1)

    @pytest.mark.asyncio
    async def test_empty_chain(self, model, status_container):
        assert await model.update_ttl_for_all_versions(("unknown",), 10) == Ok(0)
        assert "batch" not in status_container.calls

    @pytest.mark.asyncio
    async def test_chunks_of_one_hundred(self, model, status_container):
        await build_chain(model, "M1", 150)
        result = await model.update_ttl_for_all_versions(("M1",), 60)
        assert result == Ok(150)
        assert status_container.calls.count("batch") == 2

    @pytest.mark.asyncio
    async def test_failing_second_chunk_is_an_error(self, model, status_container):
        await build_chain(model, "M1", 150)
        status_container.batch_statuses = [200, 400]
        result = await model.update_ttl_for_all_versions(("M1",), 60)
        assert isinstance(result, Err)
        assert isinstance(result.error, ErrorResponse)
        assert result.error.code == 400
        assert "chunk from 100 to 150" in result.error.message
        # the first chunk cannot be rolled back
        ttls = [doc.get("ttl") for doc in status_container.documents.values()]
        assert ttls.count(60) == 100

    @pytest.mark.asyncio
    async def test_count_mismatch_is_an_error(self, model, status_container):
        await build_chain(model, "M1", 2)
        original_batch = status_container.batch

        async def short_batch(operations, partition_key):
            response = await original_batch(operations, partition_key)
            return response.model_copy(update={"result": response.result[:1]})

        status_container.batch = short_batch
        result = await model.update_ttl_for_all_versions(("M1",), 60)
        assert isinstance(result, Err)
        assert "updated 1 of 2" in result.error.message

    @pytest.mark.asyncio
    async def test_invalid_versions_are_skipped(self, model, status_container):
        await build_chain(model, "M1", 2)
        status_container.insert_raw({"id": "M1-broken", "messageId": "M1", "version": 9})
        assert await model.update_ttl_for_all_versions(("M1",), 60) == Ok(2)
        assert status_container.documents[("M1", "M1-broken")].get("ttl") is None

    @pytest.mark.asyncio
    async def test_partition_key_taken_from_documents(self, helper_config):
        subscriptions = InMemoryContainer(name="subscriptions", partition_key_path="/fiscalCode")
        model = VersionedTTLDocumentModel(VersionedDocumentModel(
            helper_config,
            subscriptions,
            Subscription,
            RetrievedSubscription,
            model_id_key="serviceId",
            partition_key_field="fiscalCode",
        ))
        for enabled in (True, False):
            assert isinstance(await model.upsert(Subscription(service_id="S1", fiscal_code="FISCAL1", enabled=enabled)), Ok)
        await model.upsert(Subscription(service_id="S2", fiscal_code="FISCAL2", enabled=True))
        original_batch = subscriptions.batch
        partition_keys = []

        async def recording_batch(operations, partition_key):
            partition_keys.append(partition_key)
            return await original_batch(operations, partition_key)

        subscriptions.batch = recording_batch
        assert await model.update_ttl_for_all_versions(("S1",), 60) == Ok(2)
        assert partition_keys == ["FISCAL1"]
        ttls = {key: doc.get("ttl") for key, doc in subscriptions.documents.items()}
        assert ttls == {
            ("FISCAL1", "S1-0000000000000000"): 60,
            ("FISCAL1", "S1-0000000000000001"): 60,
            ("FISCAL2", "S2-0000000000000000"): None,
        }

    @pytest.mark.parametrize("ttl", [-2, 1.5, "60", True])
    @pytest.mark.asyncio
    async def test_invalid_ttl_raises_before_io(self, model, status_container, ttl):
        with pytest.raises(ValueError):
            await model.update_ttl_for_all_versions(("M1",), ttl)
        assert status_container.calls == []


class TestMessageStatus:
    def test_rejected_defaults_reason(self):
        rejected = status("M1", MessageStatusValue.REJECTED)
        assert rejected.rejection_reason == RejectionReason.UNKNOWN

    def test_reason_only_for_rejected(self):
        with pytest.raises(ValidationError):
            MessageStatus(
                message_id="M1",
                status=MessageStatusValue.PROCESSED,
                updated_at=datetime.now(timezone.utc),
                rejection_reason=RejectionReason.USER_NOT_FOUND,
            )

    def test_json_names(self):
        encoded = status("M1", MessageStatusValue.REJECTED).model_dump(mode="json", by_alias=True)
        assert encoded["messageId"] == "M1"
        assert encoded["rejection_reason"] == "UNKNOWN"
        assert encoded["isRead"] is False

    @pytest.mark.asyncio
    async def test_update_status_keeps_flags(self, model, status_container):
        await model.upsert(status("M1").model_copy(update={"is_read": True}))
        result = await model.update_status(
            "M1",
            MessageStatusUpdate(status=MessageStatusValue.REJECTED, rejection_reason=RejectionReason.USER_NOT_FOUND),
        )
        assert result.value.version == 1
        assert result.value.is_read is True
        assert result.value.rejection_reason == RejectionReason.USER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_status_starts_chain(self, model):
        result = await model.update_status("M9", MessageStatusUpdate(status=MessageStatusValue.PROCESSED), fiscal_code="AAA")
        assert result.value.version == 0
        assert result.value.fiscal_code == "AAA"
        assert result.value.rejection_reason is None

    @pytest.mark.asyncio
    async def test_update_status_conflicts_with_concurrent_version(self, model, monkeypatch):
        await build_chain(model, "M1", 1)
        versioned = model.versioned_model
        original_find = versioned.find_last_version_by_model_id

        async def find_then_mark_read(search_key):
            last = await original_find(search_key)
            monkeypatch.setattr(versioned, "find_last_version_by_model_id", original_find)
            assert isinstance(await model.upsert(status("M1").model_copy(update={"is_read": True})), Ok)
            return last

        monkeypatch.setattr(versioned, "find_last_version_by_model_id", find_then_mark_read)
        result = await model.update_status("M1", MessageStatusUpdate(status=MessageStatusValue.PROCESSED))

        assert isinstance(result, Err)
        assert result.error.code == 409
        latest = await model.find_last_version_by_model_id(("M1",))
        assert latest.value.version == 1
        assert latest.value.is_read is True
