from docstore.clients.store.StoreClientInterface import StoreClientInterface
from docstore.helper.HelperConfig import HelperConfig


class StoreClientManager:
    """
    Builds one store client per engine listed in STORE_ENGINES, e.g. "[cosmos]".

    An engine "foo" resolves to the class ``StoreClientFoo`` in
    ``docstore.clients.store.foo.StoreClientFoo``.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.clients = [self._load_client(engine) for engine in self._get_configured_engines()]

    def _get_configured_engines(self) -> list[str]:
        """
        Raises:
            ValueError: If STORE_ENGINES is malformed or lists no engine.
        """
        engines = [e.strip().lower() for e in self.helper_config.get_list_val("STORE_ENGINES", default=["cosmos"])]
        if not engines:
            raise ValueError("STORE_ENGINES does not list any store engine.")
        return engines

    def _load_client(self, engine: str) -> StoreClientInterface:
        """
        Raises:
            ValueError: If no client class exists for the engine.
        """
        class_name = f"StoreClient{engine.capitalize()}"
        module_path = f"docstore.clients.store.{engine}.{class_name}"
        try:
            client_class = getattr(__import__(module_path, fromlist=[class_name]), class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported store engine specified: '{engine}' ({e})") from e
        self.logging.debug("Loaded %s from %s", class_name, module_path)
        return client_class(helper_config=self.helper_config)

    def get_clients(self) -> list[StoreClientInterface]:
        return self.clients

    def get_client(self) -> StoreClientInterface:
        """The first configured client, the one the models are bound to."""
        return self.clients[0]
