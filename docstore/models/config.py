from typing import Literal

from pydantic import BaseModel

ConfigValueType = Literal["string", "number", "bool", "list"]


class EnvConfig(BaseModel):
    """
    A single environment setting a client needs before it can talk to its backend.

    Attributes:
        env_key (str): Key suffix of the variable, e.g. "BASE_URL" for "STORE_COSMOS_BASE_URL".
        val_type (ConfigValueType): How the raw value is parsed.
        default (str | float | bool | list | None): Value used when the variable is unset.
            None marks the setting as required.
    """

    env_key: str
    val_type: ConfigValueType = "string"
    default: str | float | bool | list | None = None
