from azure.cosmos.aio import CosmosClient, DatabaseProxy

from docstore.clients.store.StoreClientInterface import StoreClientInterface
from docstore.clients.store.cosmos.StoreContainerCosmos import StoreContainerCosmos
from docstore.helper.HelperConfig import HelperConfig
from docstore.models.config import EnvConfig


class StoreClientCosmos(StoreClientInterface):
    """Cosmos DB NoSQL client on the async azure-cosmos SDK, authorized with the account key."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._database = self.get_config_val("DATABASE", default=None, val_type="string")
        self._consistency_level = self.get_config_val("CONSISTENCY_LEVEL", default="Session", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Cosmos"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="DATABASE", val_type="string", default=None),
            EnvConfig(env_key="CONSISTENCY_LEVEL", val_type="string", default="Session"),
        ]

    ################ CONTAINERS ##################
    def _get_database(self) -> DatabaseProxy:
        return self._get_booted_client().get_database_client(self._database)

    def get_container(self, container_name: str, partition_key_path: str = "/id") -> StoreContainerCosmos:
        return StoreContainerCosmos(
            proxy=self._get_database().get_container_client(container_name),
            container_name=container_name,
            partition_key_path=partition_key_path,
            logger=self.logging,
        )

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    def _create_client(self) -> CosmosClient:
        self.logging.debug("Connecting to Cosmos account %s, database %s", self._base_url, self._database)
        return CosmosClient(
            url=self._base_url,
            credential=self._api_key,
            consistency_level=self._consistency_level,
            connection_timeout=int(self.timeout),
        )

    async def _ping(self) -> dict:
        return await self._get_database().read()
