from pydantic import BaseModel

from docstore.clients.store.ContainerInterface import ContainerInterface
from docstore.documents.VersionedDocumentModel import TN, TR, VersionedDocumentModel, generate_versioned_model_id
from docstore.helper.HelperConfig import HelperConfig
from docstore.models.document import PartitionKeyValue


def generate_composed_versioned_model_id(reference_id: str, partition_key: PartitionKeyValue, version: int) -> str:
    """Returns e.g. "ref-pk-0000000000000003" for chains identified by two fields."""
    return generate_versioned_model_id(f"{reference_id}-{partition_key}", version)


class ComposedVersionedDocumentModel(VersionedDocumentModel[TN, TR]):
    """
    A versioned model whose chain is identified by a reference id and a separate partition key.

    Both values are part of the version document ids, so the same reference id can own
    independent chains in different partitions.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        container: ContainerInterface,
        new_item_model: type[TN],
        retrieved_item_model: type[TR],
        model_id_key: str,
        partition_key_field: str,
    ):
        super().__init__(
            helper_config=helper_config,
            container=container,
            new_item_model=new_item_model,
            retrieved_item_model=retrieved_item_model,
            model_id_key=model_id_key,
            partition_key_field=partition_key_field,
        )

    def derive_id(self, document: dict | BaseModel, version: int) -> str:
        return generate_composed_versioned_model_id(
            self.get_model_id(document), self.get_partition_key(document), version
        )
