from abc import abstractmethod

from docstore.clients.ClientInterface import ClientInterface
from docstore.clients.store.ContainerInterface import ContainerInterface
from docstore.helper.HelperConfig import HelperConfig


class StoreClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "store"

    ################ CONTAINERS ##################
    @abstractmethod
    def get_container(self, container_name: str, partition_key_path: str = "/id") -> ContainerInterface:
        """
        Returns a handle bound to one container of the store. Models receive this handle.

        Args:
            container_name (str): Name of the container (collection).
            partition_key_path (str): JSON path of the partition key field, e.g. "/messageId".

        Raises:
            RuntimeError: If the client is not booted.
        """
        pass
