"""
funcshim: adapts a user function to an HTTP request/response cycle.

Usage:
    from funcshim import Invoker

    def hello(request):
        return "Hello"

    invoker = Invoker(hello, "http")
    response = await invoker.handle(request)
"""

from funcshim.cloudevents import CloudEvent, Context
from funcshim.exceptions import (
    EventConversionError,
    FunctionShimError,
    FunctionSourceNotFound,
    InvalidCloudEvent,
    InvalidFunctionSignature,
    InvalidSignatureType,
    InvalidTarget,
)
from funcshim.invoker import Invoker
from funcshim.registry import DEFAULT_REGISTRY, FunctionRegistry, register_function
from funcshim.wrappers import (
    FUNCTION_STATUS_HEADER,
    CloudEventFunctionWrapper,
    Failure,
    FunctionWrapper,
    HttpFunctionWrapper,
    Success,
)

__all__ = [
    "CloudEvent",
    "CloudEventFunctionWrapper",
    "Context",
    "DEFAULT_REGISTRY",
    "EventConversionError",
    "FUNCTION_STATUS_HEADER",
    "Failure",
    "FunctionRegistry",
    "FunctionShimError",
    "FunctionSourceNotFound",
    "FunctionWrapper",
    "HttpFunctionWrapper",
    "InvalidCloudEvent",
    "InvalidFunctionSignature",
    "InvalidSignatureType",
    "InvalidTarget",
    "Invoker",
    "Success",
    "register_function",
]
