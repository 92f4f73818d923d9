"""Signature adapters that run user functions against an inbound request.

Each wrapper exposes a single ``execute(request)`` coroutine returning an
``ExecutionResult``: ``Success`` carries the response to send, ``Failure``
carries the exception raised by user code together with its formatted
traceback. Errors never escape ``execute``; the invoker decides how a failure
is reported.
"""

from __future__ import annotations

import inspect
import traceback
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Union

import structlog
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from funcshim import cloudevents
from funcshim.exceptions import InvalidCloudEvent, InvalidFunctionSignature

LOGGER = structlog.get_logger(__name__)

FUNCTION_STATUS_HEADER = "X-Google-Status"


@dataclass(slots=True)
class Success:
    response: Response


@dataclass(slots=True)
class Failure:
    error: BaseException
    description: str

    @classmethod
    def from_exception(cls, error: BaseException) -> Failure:
        description = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ).rstrip("\n")
        return cls(error=error, description=description)


ExecutionResult = Union[Success, Failure]


def _check_arity(function: Callable[..., Any], expected: int) -> None:
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        # Builtins and some C callables expose no signature; trust the caller.
        return

    positional = []
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            positional.append(parameter)

    required = [p for p in positional if p.default is inspect.Parameter.empty]
    if len(required) > expected or len(positional) < expected:
        raise InvalidFunctionSignature(expected, len(positional))


async def _call(function: Callable[..., Any], *args: Any) -> Any:
    if inspect.iscoroutinefunction(function):
        return await function(*args)
    result = await run_in_threadpool(function, *args)
    if inspect.isawaitable(result):
        result = await result
    return result


def make_response(value: Any) -> Response:
    """Convert an HTTP function's return value into a response."""
    status_code = None
    headers = None
    if isinstance(value, tuple):
        if len(value) == 3:
            value, status_code, headers = value
        elif len(value) == 2:
            value, status_code = value
        else:
            raise TypeError(
                "Function response tuple must be (body, status) or (body, status, headers)"
            )

    if isinstance(value, Response):
        response = value
    elif isinstance(value, (str, bytes)):
        response = Response(content=value)
    elif isinstance(value, (dict, list)):
        response = JSONResponse(value)
    else:
        raise TypeError(
            "Function response must be str, bytes, dict, list or Response, "
            f"not {type(value).__name__}"
        )

    if status_code is not None:
        response.status_code = int(status_code)
    if headers:
        for name, header_value in dict(headers).items():
            response.headers[name] = str(header_value)
    return response


class FunctionWrapper(ABC):
    """Normalizes a user function to a single ``execute(request)`` operation."""

    signature_type: str = ""
    # Value of X-Google-Status on a failed execution.
    status_header_value: str = "error"

    def __init__(self, function: Callable[..., Any]):
        self.function = function

    @property
    def name(self) -> str:
        return getattr(self.function, "__qualname__", repr(self.function))

    @abstractmethod
    async def execute(self, request: Request) -> ExecutionResult:
        raise NotImplementedError


class HttpFunctionWrapper(FunctionWrapper):
    signature_type = "http"
    status_header_value = "crash"

    def __init__(self, function: Callable[..., Any]):
        _check_arity(function, 1)
        super().__init__(function)

    async def execute(self, request: Request) -> ExecutionResult:
        try:
            value = await _call(self.function, request)
            response = make_response(value)
        except Exception as exc:
            return Failure.from_exception(exc)
        return Success(response)


class CloudEventFunctionWrapper(FunctionWrapper):
    """Decodes the request into a CloudEvent and hands it to the function.

    With ``legacy_signature`` the function is called as ``function(data, context)``
    instead of ``function(event)``.
    """

    signature_type = "cloudevent"
    status_header_value = "error"

    def __init__(self, function: Callable[..., Any], legacy_signature: bool = False):
        _check_arity(function, 2 if legacy_signature else 1)
        super().__init__(function)
        self.legacy_signature = legacy_signature

    async def execute(self, request: Request) -> ExecutionResult:
        try:
            event = await cloudevents.from_request(request)
        except InvalidCloudEvent as exc:
            LOGGER.warning("cloudevent.rejected", reason=str(exc), function=self.name)
            return Success(
                Response(
                    content=f"Could not parse CloudEvent: {exc}",
                    status_code=400,
                    headers={FUNCTION_STATUS_HEADER: "crash"},
                    media_type="text/plain",
                )
            )

        try:
            if self.legacy_signature:
                await _call(self.function, event.data, cloudevents.Context.from_event(event))
            else:
                await _call(self.function, event)
        except Exception as exc:
            return Failure.from_exception(exc)
        return Success(Response(status_code=200))
