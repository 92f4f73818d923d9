"""Invoker: resolves a function target and adapts it to a request/response cycle."""

from __future__ import annotations

import sys
from collections.abc import MutableMapping
from time import perf_counter
from typing import Any, Callable, TextIO

import structlog
from starlette.requests import Request
from starlette.responses import Response

from funcshim import metrics
from funcshim.environ import request_from_environ
from funcshim.exceptions import InvalidSignatureType, InvalidTarget
from funcshim.registry import DEFAULT_REGISTRY, FunctionRegistry
from funcshim.wrappers import (
    FUNCTION_STATUS_HEADER,
    CloudEventFunctionWrapper,
    Failure,
    FunctionWrapper,
    HttpFunctionWrapper,
)

LOGGER = structlog.get_logger(__name__)

HTTP_SIGNATURE_TYPES = frozenset({"http"})
CLOUDEVENT_SIGNATURE_TYPES = frozenset({"event", "cloudevent"})


def _add_severity(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    event_dict["severity"] = method_name
    return event_dict


def crash_logger(stream: TextIO | None = None) -> Any:
    """Logger emitting one ``{"message": ..., "severity": ...}`` JSON line per call."""
    return structlog.wrap_logger(
        structlog.PrintLogger(file=stream or sys.stderr),
        processors=[
            _add_severity,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        cache_logger_on_first_use=False,
    )


class Invoker:
    """Runs one user function per request.

    ``target`` is either the name of a function in ``registry`` (the
    process-wide registry by default) or a callable. A registered name wins
    and ``signature_type`` is then ignored; a callable must come with
    ``"http"``, ``"event"`` or ``"cloudevent"``.
    """

    def __init__(
        self,
        target: str | Callable[..., Any],
        signature_type: str | None = None,
        *,
        registry: FunctionRegistry | None = None,
    ):
        registry = DEFAULT_REGISTRY if registry is None else registry

        if isinstance(target, str) and target in registry:
            self.function: FunctionWrapper = registry.get(target)
        else:
            if not callable(target):
                raise InvalidTarget(target)
            if not isinstance(signature_type, str):
                raise InvalidSignatureType(signature_type)
            if signature_type in HTTP_SIGNATURE_TYPES:
                self.function = HttpFunctionWrapper(target)
            elif signature_type in CLOUDEVENT_SIGNATURE_TYPES:
                self.function = CloudEventFunctionWrapper(target, False)
            else:
                raise InvalidSignatureType(signature_type)

        self._error_logger = crash_logger()
        LOGGER.info(
            "invoker.ready",
            function=self.function.name,
            signature_type=self.function.signature_type,
        )

    async def handle(self, request: Request | None = None) -> Response:
        if request is None:
            request = request_from_environ()

        start = perf_counter()
        try:
            result = await self.function.execute(request)
        except Exception as exc:
            # Third-party wrappers may raise instead of returning a Failure.
            result = Failure.from_exception(exc)
        latency_ms = (perf_counter() - start) * 1000

        failed = isinstance(result, Failure)
        metrics.observe_invocation(
            signature_type=self.function.signature_type,
            latency_ms=latency_ms,
            failed=failed,
        )
        if not failed:
            return result.response

        self._error_logger.error(result.description)
        return Response(
            status_code=500,
            headers={FUNCTION_STATUS_HEADER: self.function.status_header_value},
        )
