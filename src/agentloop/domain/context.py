"""Trusted, model-invisible runtime context for tool executors."""

from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from agentloop.domain.exceptions import MissingContextError


class RuntimeContext(Mapping[str, Any]):
    """
    Read-only key-value bag supplied by the caller at invocation time.

    The context is handed to tool executors only. It is never placed in
    conversation history and never sent to the model.

    Args:
        values: Initial key-value pairs; copied on construction.
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Mapping[str, Any] = MappingProxyType(dict(values or {}))

    @classmethod
    def coerce(
        cls, values: "Optional[Mapping[str, Any] | RuntimeContext]"
    ) -> "RuntimeContext":
        """Return ``values`` as a RuntimeContext, wrapping plain mappings."""

        if isinstance(values, RuntimeContext):
            return values
        return cls(values)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def require(self, key: str) -> Any:
        """
        Returns a context value that a tool cannot work without.

        Args:
            key: Context key to fetch.

        Returns:
            The stored value.

        Raises:
            MissingContextError: If the key is absent or None.
        """
        value = self._values.get(key)
        if value is None:
            raise MissingContextError(key)
        return value

    def __repr__(self) -> str:
        # Values may be sensitive (user ids, tokens); only keys are shown.
        return f"RuntimeContext(keys={sorted(self._values)})"
