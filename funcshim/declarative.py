"""Decorators that wrap a function and register it under a name.

    from funcshim import declarative

    @declarative.http("hello")
    def hello(request):
        return "Hello"
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from funcshim.registry import DEFAULT_REGISTRY, FunctionRegistry
from funcshim.wrappers import CloudEventFunctionWrapper, HttpFunctionWrapper

F = TypeVar("F", bound=Callable[..., Any])


def http(name: str, *, registry: FunctionRegistry | None = None) -> Callable[[F], F]:
    """Register the decorated function as an HTTP function called ``name``."""

    def decorator(function: F) -> F:
        _resolve(registry).register(name, HttpFunctionWrapper(function))
        return function

    return decorator


def cloud_event(name: str, *, registry: FunctionRegistry | None = None) -> Callable[[F], F]:
    """Register the decorated function as a CloudEvent function called ``name``."""

    def decorator(function: F) -> F:
        _resolve(registry).register(name, CloudEventFunctionWrapper(function, False))
        return function

    return decorator


def _resolve(registry: FunctionRegistry | None) -> FunctionRegistry:
    return DEFAULT_REGISTRY if registry is None else registry
