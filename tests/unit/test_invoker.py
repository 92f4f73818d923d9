from __future__ import annotations

import pytest
from starlette.requests import Request
from starlette.responses import Response

from funcshim import metrics
from funcshim.exceptions import InvalidSignatureType, InvalidTarget
from funcshim.invoker import Invoker
from funcshim.registry import FunctionRegistry
from funcshim.wrappers import (
    CloudEventFunctionWrapper,
    ExecutionResult,
    FunctionWrapper,
    HttpFunctionWrapper,
    Success,
)
from tests.helpers import binary_event_headers, build_request, parse_log_lines, run


def http_ok(request: Request) -> Response:
    return Response(content="ok", status_code=201, headers={"x-custom": "yes"})


def http_crash(request: Request) -> str:
    raise RuntimeError("boom in /api/ünïcode")


def event_ok(event) -> None:
    return None


def event_crash(event) -> None:
    raise ValueError("event failed")


class RecordingWrapper(FunctionWrapper):
    signature_type = "custom"

    def __init__(self, response: Response):
        super().__init__(lambda request: response)
        self.response = response
        self.requests: list[Request] = []

    async def execute(self, request: Request) -> ExecutionResult:
        self.requests.append(request)
        return Success(self.response)


class RaisingWrapper(FunctionWrapper):
    signature_type = "custom"

    def __init__(self) -> None:
        super().__init__(lambda request: None)

    async def execute(self, request: Request) -> ExecutionResult:
        raise RuntimeError("wrapper exploded")


def test_registered_name_uses_stored_wrapper() -> None:
    registry = FunctionRegistry()
    expected = Response(content="from registry", status_code=202)
    wrapper = RecordingWrapper(expected)
    registry.register("declared", wrapper)

    invoker = Invoker("declared", registry=registry)
    request = build_request()
    response = run(invoker.handle(request))

    assert invoker.function is wrapper
    assert response is expected
    assert wrapper.requests == [request]


def test_registered_name_ignores_signature_type() -> None:
    registry = FunctionRegistry()
    wrapper = RecordingWrapper(Response())
    registry.register("declared", wrapper)

    invoker = Invoker("declared", "not-a-signature", registry=registry)

    assert invoker.function is wrapper


@pytest.mark.parametrize("target", ["unregistered", 42, None, {"name": "fn"}])
def test_non_callable_target_is_rejected(target: object) -> None:
    with pytest.raises(InvalidTarget):
        Invoker(target, "http", registry=FunctionRegistry())


def test_invalid_target_message_names_target() -> None:
    with pytest.raises(InvalidTarget, match='Function target is not callable: "missing"'):
        Invoker("missing", "http", registry=FunctionRegistry())


def test_http_signature_wraps_as_http() -> None:
    invoker = Invoker(http_ok, "http", registry=FunctionRegistry())

    assert isinstance(invoker.function, HttpFunctionWrapper)


@pytest.mark.parametrize("signature_type", ["event", "cloudevent"])
def test_event_signatures_wrap_as_cloudevent(signature_type: str) -> None:
    invoker = Invoker(event_ok, signature_type, registry=FunctionRegistry())

    assert isinstance(invoker.function, CloudEventFunctionWrapper)
    assert invoker.function.legacy_signature is False


@pytest.mark.parametrize("signature_type", [None, "", "HTTP", "cloud_event", "typed"])
def test_unknown_signature_type_is_rejected(signature_type: str | None) -> None:
    with pytest.raises(InvalidSignatureType):
        Invoker(http_ok, signature_type, registry=FunctionRegistry())


def test_success_passes_response_through_without_logging(capsys: pytest.CaptureFixture[str]) -> None:
    invoker = Invoker(http_ok, "http", registry=FunctionRegistry())

    response = run(invoker.handle(build_request()))

    assert response.status_code == 201
    assert response.body == b"ok"
    assert response.headers["x-custom"] == "yes"
    assert "x-google-status" not in response.headers
    assert capsys.readouterr().err == ""


def test_http_crash_returns_500_with_crash_status(capsys: pytest.CaptureFixture[str]) -> None:
    invoker = Invoker(http_crash, "http", registry=FunctionRegistry())

    response = run(invoker.handle(build_request()))

    assert response.status_code == 500
    assert response.headers["X-Google-Status"] == "crash"
    assert response.body == b""

    lines = parse_log_lines(capsys.readouterr().err)
    assert len(lines) == 1
    assert lines[0]["severity"] == "error"
    assert "RuntimeError: boom in /api/ünïcode" in lines[0]["message"]
    assert "Traceback" in lines[0]["message"]
    assert set(lines[0]) == {"message", "severity"}


def test_crash_log_leaves_unicode_and_slashes_unescaped(capsys: pytest.CaptureFixture[str]) -> None:
    invoker = Invoker(http_crash, "http", registry=FunctionRegistry())

    run(invoker.handle(build_request()))

    raw = capsys.readouterr().err
    assert "/api/ünïcode" in raw
    assert "\\u" not in raw
    assert "\\/" not in raw
    assert raw.count("\n") == 1


def test_cloudevent_crash_returns_500_with_error_status(capsys: pytest.CaptureFixture[str]) -> None:
    invoker = Invoker(event_crash, "cloudevent", registry=FunctionRegistry())
    request = build_request("POST", body=b"{}", headers=binary_event_headers())

    response = run(invoker.handle(request))

    assert response.status_code == 500
    assert response.headers["X-Google-Status"] == "error"
    lines = parse_log_lines(capsys.readouterr().err)
    assert len(lines) == 1
    assert "ValueError: event failed" in lines[0]["message"]


def test_cloudevent_success_returns_empty_ok(capsys: pytest.CaptureFixture[str]) -> None:
    invoker = Invoker(event_ok, "event", registry=FunctionRegistry())
    request = build_request("POST", body=b'{"name": "file.txt"}', headers=binary_event_headers())

    response = run(invoker.handle(request))

    assert response.status_code == 200
    assert response.body == b""
    assert capsys.readouterr().err == ""


def test_exception_from_wrapper_execute_is_recovered(capsys: pytest.CaptureFixture[str]) -> None:
    registry = FunctionRegistry()
    registry.register("raiser", RaisingWrapper())
    invoker = Invoker("raiser", registry=registry)

    response = run(invoker.handle(build_request()))

    assert response.status_code == 500
    assert response.headers["X-Google-Status"] == "error"
    lines = parse_log_lines(capsys.readouterr().err)
    assert len(lines) == 1
    assert "wrapper exploded" in lines[0]["message"]


def test_handle_without_request_reads_ambient_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}

    def capture(request: Request) -> str:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["query"] = dict(request.query_params)
        seen["header"] = request.headers.get("x-trace")
        return "ambient"

    monkeypatch.setenv("REQUEST_METHOD", "GET")
    monkeypatch.setenv("PATH_INFO", "/from/env")
    monkeypatch.setenv("QUERY_STRING", "a=1")
    monkeypatch.setenv("HTTP_X_TRACE", "abc")
    monkeypatch.delenv("CONTENT_LENGTH", raising=False)

    invoker = Invoker(capture, "http", registry=FunctionRegistry())
    response = run(invoker.handle())

    assert response.body == b"ambient"
    assert seen == {"method": "GET", "path": "/from/env", "query": {"a": "1"}, "header": "abc"}


def test_invocations_are_counted_by_outcome() -> None:
    def sample(outcome: str) -> float:
        value = metrics.REGISTRY.get_sample_value(
            "funcshim_invocations_total",
            {"signature_type": "http", "outcome": outcome},
        )
        return value or 0.0

    before_success, before_failure = sample("success"), sample("failure")
    registry = FunctionRegistry()
    run(Invoker(http_ok, "http", registry=registry).handle(build_request()))
    run(Invoker(http_crash, "http", registry=registry).handle(build_request()))

    assert sample("success") == before_success + 1
    assert sample("failure") == before_failure + 1


@pytest.mark.parametrize("signature_type", [["http"], {"type": "http"}, 1])
def test_non_string_signature_type_is_rejected(signature_type: object) -> None:
    with pytest.raises(InvalidSignatureType):
        Invoker(http_ok, signature_type, registry=FunctionRegistry())  # type: ignore[arg-type]


def test_malformed_legacy_event_is_a_bad_request_not_a_crash(capsys: pytest.CaptureFixture[str]) -> None:
    invoker = Invoker(event_ok, "cloudevent", registry=FunctionRegistry())
    payload = {"eventId": "1", "eventType": ["x"], "resource": "projects/p/topics/t", "data": {}}

    response = run(invoker.handle(build_request("POST", json_body=payload)))

    assert response.status_code == 400
    assert response.headers["X-Google-Status"] == "crash"
    assert capsys.readouterr().err == ""
