"""Tests for the mutating-call error policy.

Covers:
- Return-code extraction from ``ControlPlaneError`` and httpx responses
- Malformed and non-JSON error bodies
- Classification: table hit, unknown code, no code
- "Not found" detection
"""

from __future__ import annotations

import json

import httpx
import pytest

from infra_convergence.clients.base import ControlPlaneError, ResourceNotFoundError
from infra_convergence.core.constants import RETURN_CODE_GROUP_IN_USE
from infra_convergence.polling.error_policy import Disposition, ErrorPolicy, error_code

URL = "https://autoscaling.example.test/vautoscaling/v2/deleteAutoScalingGroup"


def _http_error(status: int, **kwargs: object) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", URL)
    response = httpx.Response(status, request=request, **kwargs)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


def _in_use_body() -> dict[str, object]:
    return {
        "responseError": {
            "returnCode": RETURN_CODE_GROUP_IN_USE,
            "returnMessage": "The group is in use by a policy.",
        }
    }


@pytest.fixture()
def policy() -> ErrorPolicy:
    return ErrorPolicy.from_codes([RETURN_CODE_GROUP_IN_USE])


# ---------------------------------------------------------------------------
# error_code
# ---------------------------------------------------------------------------


class TestErrorCode:
    def test_control_plane_error_code(self) -> None:
        assert error_code(ControlPlaneError("busy", code="X1")) == "X1"

    def test_control_plane_error_default_code(self) -> None:
        assert error_code(ControlPlaneError("busy")) == "CONTROL_PLANE_ERROR"

    def test_http_error_with_envelope(self) -> None:
        exc = _http_error(400, json=_in_use_body())
        assert error_code(exc) == RETURN_CODE_GROUP_IN_USE

    def test_http_error_without_message(self) -> None:
        exc = _http_error(400, json={"responseError": {"returnCode": "42"}})
        assert error_code(exc) == "42"

    def test_http_error_with_other_json_shape(self) -> None:
        exc = _http_error(500, json={"error": "internal"})
        assert error_code(exc) is None

    def test_http_error_with_non_json_body(self) -> None:
        exc = _http_error(502, text="<html>Bad Gateway</html>")
        assert error_code(exc) is None

    def test_http_error_with_empty_body(self) -> None:
        assert error_code(_http_error(503)) is None

    def test_unread_streaming_body_has_no_code(self) -> None:
        stream = httpx.ByteStream(json.dumps(_in_use_body()).encode())
        exc = _http_error(400, stream=stream)
        assert error_code(exc) is None

    def test_read_streaming_body_yields_code(self) -> None:
        stream = httpx.ByteStream(json.dumps(_in_use_body()).encode())
        exc = _http_error(400, stream=stream)
        exc.response.read()
        assert error_code(exc) == RETURN_CODE_GROUP_IN_USE

    def test_plain_exception_has_no_code(self) -> None:
        assert error_code(RuntimeError("boom")) is None


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------


class TestClassify:
    def test_table_code_is_retry_as_pending(self, policy: ErrorPolicy) -> None:
        exc = ControlPlaneError("in use", code=RETURN_CODE_GROUP_IN_USE)
        assert policy.classify(exc) is Disposition.RETRY_AS_PENDING

    def test_table_code_in_http_body_is_retry_as_pending(self, policy: ErrorPolicy) -> None:
        assert policy.classify(_http_error(400, json=_in_use_body())) is Disposition.RETRY_AS_PENDING

    def test_unknown_code_is_fatal(self, policy: ErrorPolicy) -> None:
        assert policy.classify(ControlPlaneError("denied", code="AUTH")) is Disposition.FATAL

    def test_no_code_is_fatal(self, policy: ErrorPolicy) -> None:
        assert policy.classify(ConnectionError("reset")) is Disposition.FATAL

    def test_unparseable_body_is_fatal(self, policy: ErrorPolicy) -> None:
        assert policy.classify(_http_error(400, text="nope")) is Disposition.FATAL

    def test_unread_streaming_body_is_fatal(self, policy: ErrorPolicy) -> None:
        stream = httpx.ByteStream(json.dumps(_in_use_body()).encode())
        assert policy.classify(_http_error(400, stream=stream)) is Disposition.FATAL

    def test_empty_policy_is_always_fatal(self) -> None:
        exc = ControlPlaneError("in use", code=RETURN_CODE_GROUP_IN_USE)
        assert ErrorPolicy().classify(exc) is Disposition.FATAL

    def test_explicit_fatal_entry(self) -> None:
        policy = ErrorPolicy({"A": Disposition.FATAL, "B": Disposition.RETRY_AS_PENDING})
        assert policy.classify(ControlPlaneError("", code="A")) is Disposition.FATAL
        assert policy.classify(ControlPlaneError("", code="B")) is Disposition.RETRY_AS_PENDING

    def test_table_is_read_only(self, policy: ErrorPolicy) -> None:
        with pytest.raises(TypeError):
            policy.table["OTHER"] = Disposition.RETRY_AS_PENDING  # type: ignore[index]

    def test_table_is_copied_from_input(self) -> None:
        source = {"A": Disposition.RETRY_AS_PENDING}
        policy = ErrorPolicy(source)
        source["B"] = Disposition.RETRY_AS_PENDING
        assert "B" not in policy.table


# ---------------------------------------------------------------------------
# is_not_found
# ---------------------------------------------------------------------------


class TestIsNotFound:
    def test_resource_not_found_error(self, policy: ErrorPolicy) -> None:
        assert policy.is_not_found(ResourceNotFoundError("gone")) is True

    def test_control_plane_404(self, policy: ErrorPolicy) -> None:
        assert policy.is_not_found(ControlPlaneError("gone", status=404)) is True

    def test_http_404(self, policy: ErrorPolicy) -> None:
        assert policy.is_not_found(_http_error(404)) is True

    def test_configured_not_found_code(self) -> None:
        policy = ErrorPolicy.from_codes([], not_found_codes=["NO_SUCH_GROUP"])
        assert policy.is_not_found(ControlPlaneError("gone", code="NO_SUCH_GROUP", status=400))

    def test_in_use_is_not_not_found(self, policy: ErrorPolicy) -> None:
        assert policy.is_not_found(_http_error(400, json=_in_use_body())) is False

    def test_plain_exception(self, policy: ErrorPolicy) -> None:
        assert policy.is_not_found(KeyError("x")) is False
