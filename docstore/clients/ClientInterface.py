from abc import ABC, abstractmethod
from contextlib import AsyncExitStack
from typing import Any, AsyncContextManager, Callable

from docstore.helper.HelperConfig import HelperConfig
from docstore.models.config import ConfigValueType, EnvConfig


class ClientInterface(ABC):
    """
    Base of every backend client.

    Settings are read from "<CLIENT_TYPE>_<ENGINE>_<KEY>" environment variables and
    checked once when the client is built. The SDK client only exists between
    :meth:`boot` and :meth:`close`.
    """

    def __init__(self, helper_config: HelperConfig):
        self._helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self._client: Any = None
        self._exit_stack: AsyncExitStack | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Resolves every required setting so that a missing one fails at construction time.

        Raises:
            ValueError: If a required setting is missing or cannot be parsed.
        """
        for setting in self._get_required_config():
            self.get_config_val(raw_key=setting.env_key, default=setting.default, val_type=setting.val_type)

    def is_booted(self) -> bool:
        return self._client is not None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """Lowercase kind of backend, e.g. "store"."""
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """Lowercase engine of the backend, e.g. "cosmos"."""
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    def _get_booted_client(self) -> Any:
        """
        Raises:
            RuntimeError: If :meth:`boot` was not called.
        """
        if self._client is None:
            raise RuntimeError(f"The {self.get_engine_name()} client is not booted. Call boot() first.")
        return self._client

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns:
            list[EnvConfig]: Every setting the client reads, with its type and default.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The environment variable of a setting, e.g. "STORE_COSMOS_BASE_URL" for "BASE_URL".
        """
        return "_".join([self.get_client_type(), self.get_engine_name(), raw_key]).upper()

    def _get_config_reader(self, val_type: ConfigValueType) -> Callable[..., Any]:
        readers: dict[str, Callable[..., Any]] = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        if val_type not in readers:
            raise ValueError(
                f"Setting type '{val_type}' is not supported by the {self.get_engine_name()} {self.get_client_type()} client."
            )
        return readers[val_type]

    def get_config_val(self, raw_key: str, default: Any = None, val_type: ConfigValueType = "string") -> Any:
        """
        Reads one setting of the client.

        Args:
            raw_key (str): Setting name without prefix, e.g. "BASE_URL".
            default (Any): Value used when the variable is unset. None makes the setting required.
            val_type (ConfigValueType): How the raw value is parsed.

        Raises:
            ValueError: If the setting is required but unset, or cannot be parsed.
        """
        return self._get_config_reader(val_type)(self._get_config_key_name(raw_key), default=default)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    @abstractmethod
    def _create_client(self) -> AsyncContextManager[Any]:
        """
        Builds the SDK client of the backend. It is entered on boot and exited on close.
        """
        pass

    @abstractmethod
    async def _ping(self) -> Any:
        """Cheapest authenticated call of the backend, used by :meth:`do_healthcheck`."""
        pass

    async def boot(self) -> None:
        """Opens the SDK client. Calling it twice keeps the first client."""
        if self._client is not None:
            return
        stack = AsyncExitStack()
        self._client = await stack.enter_async_context(self._create_client())
        self._exit_stack = stack

    async def close(self) -> None:
        """Closes the SDK client. The client can be booted again afterwards."""
        stack, self._exit_stack, self._client = self._exit_stack, None, None
        if stack is not None:
            await stack.aclose()

    async def do_healthcheck(self) -> Any:
        """Checks that the backend is reachable and accepts the credentials.

        Raises:
            RuntimeError: If :meth:`boot` was not called.
            AzureError: If the backend cannot be reached or rejects the call.
        """
        self._get_booted_client()
        response = await self._ping()
        self.logging.info("%s client '%s' is healthy.", self.get_client_type().capitalize(), self.get_engine_name())
        return response
