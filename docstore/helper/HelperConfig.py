"""Environment backed configuration for the document store clients and models."""

import logging
import os
from typing import Any


class HelperConfig:
    """Reads every setting from environment variables and hands out the shared logger."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _get_raw(self, key: str) -> str | None:
        """Returns the raw value of an environment variable. Empty strings count as unset."""
        raw = os.getenv(key.upper()) or None
        return raw.strip() if raw is not None else None

    def _missing(self, key: str, default: Any) -> Any:
        if default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return default

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Returns a string setting.

        Args:
            key (str): Variable name, upper-cased before the lookup.
            default (str | None): Returned when the variable is unset or empty.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is unset and there is no default.
        """
        raw = self._get_raw(key)
        return raw if raw is not None else self._missing(key, default)

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Returns a numeric setting, parsed as float when it has a decimal point or exponent.

        Raises:
            ValueError: If the variable is unset and there is no default.
                or if the value is not a number.
        """
        raw = self._get_raw(key)
        if raw is None:
            return self._missing(key, default)
        try:
            return float(raw) if any(c in raw for c in ".eE") else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Returns a boolean setting, "1", "true", "yes" and "on" count as true."""
        raw = self._get_raw(key)
        if raw is None:
            return self._missing(key, default)
        return raw.lower() in {"1", "true", "yes", "on"}

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",") -> list[str]:
        """Returns a list setting written as "[elem1,elem2,...]".

        Args:
            key (str): Variable name, upper-cased before the lookup.
            default (list[str] | None): Returned when the variable is unset or empty.
            separator (str): The delimiter between elements.

        Returns:
            list[str]: The stripped, non-empty elements.

        Raises:
            ValueError: If the variable is unset and there is no default.
                or if the value is not wrapped in brackets.
        """
        raw = self._get_raw(key)
        if raw is None:
            return self._missing(key, default)
        if not raw.startswith("[") or not raw.endswith("]"):
            raise ValueError(
                f"Environment variable '{key.upper()}' must be in the format "
                f"'[elem1{separator}elem2{separator}...]'. Got: '{raw}'"
            )
        return [v.strip() for v in raw[1:-1].split(separator) if v.strip()]

    def get_logger(self) -> logging.Logger:
        """The logger shared by every client and model."""
        return self._logger
