"""Name-to-wrapper lookup table consulted when an invoker resolves its target."""

from __future__ import annotations

from collections.abc import Iterator

from funcshim.wrappers import FunctionWrapper


class FunctionRegistry:
    """Mapping of function names to already wrapped functions.

    Re-registering a name replaces the previous entry. Entries are never
    removed.
    """

    def __init__(self) -> None:
        self._functions: dict[str, FunctionWrapper] = {}

    def register(self, name: str, function: FunctionWrapper) -> None:
        if not isinstance(function, FunctionWrapper):
            raise TypeError(
                f"Registered functions must be FunctionWrapper instances, not {type(function).__name__}"
            )
        self._functions[name] = function

    def get(self, name: str) -> FunctionWrapper | None:
        return self._functions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)


DEFAULT_REGISTRY = FunctionRegistry()


def register_function(name: str, function: FunctionWrapper) -> None:
    """Register ``function`` under ``name`` in the process-wide registry.

    Used by the declarative decorators; an invoker built with the same name
    and no explicit registry picks this entry up.
    """
    DEFAULT_REGISTRY.register(name, function)
