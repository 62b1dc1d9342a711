"""Error policy — classify mutating-call failures.

Used only by refresh steps that perform a mutating call (the
delete-until-accepted recipe).  A small table maps control-plane return
codes to ``RETRY_AS_PENDING``; every other failure is ``FATAL``.  This
lets one rejected delete be folded back into the poller's pending path
instead of aborting the whole wait.

Return codes are read from:
    1. ``ControlPlaneError.code``.
    2. An ``httpx.HTTPStatusError`` whose JSON body carries
       ``{"responseError": {"returnCode": ..., "returnMessage": ...}}``.
       A body that is malformed, or a streamed body not yet read, carries
       no code.
"""

from __future__ import annotations

import enum
import json
import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType

import httpx
from pydantic import BaseModel, Field, ValidationError

from infra_convergence.clients.base import ControlPlaneError, ResourceNotFoundError
from infra_convergence.core.constants import HTTP_STATUS_NOT_FOUND

logger = logging.getLogger("infra_convergence.polling.error_policy")


class Disposition(enum.Enum):
    """How a mutating-call failure affects the wait.

    Values:
        FATAL:            Abort the wait and surface the error.
        RETRY_AS_PENDING: Treat the failure as "still converging".
    """

    FATAL = "fatal"
    RETRY_AS_PENDING = "retry_as_pending"


# ---------------------------------------------------------------------------
# Error body parsing
# ---------------------------------------------------------------------------


class _ResponseError(BaseModel):
    return_code: str = Field(alias="returnCode")
    return_message: str = Field(default="", alias="returnMessage")


class ControlPlaneErrorBody(BaseModel):
    """Common error envelope returned by the control-plane API."""

    response_error: _ResponseError = Field(alias="responseError")


def error_code(exc: BaseException) -> str | None:
    """Return the control-plane return code carried by *exc*, if any."""
    if isinstance(exc, ControlPlaneError):
        return exc.code or None
    if isinstance(exc, httpx.HTTPStatusError):
        return _code_from_response(exc.response)
    return None


def _code_from_response(response: httpx.Response) -> str | None:
    try:
        body = ControlPlaneErrorBody.model_validate(response.json())
    except httpx.StreamError:
        logger.debug(
            "Unread control-plane error body | status=%d",
            response.status_code,
        )
        return None
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
        logger.debug(
            "Unparseable control-plane error body | status=%d",
            response.status_code,
        )
        return None
    return body.response_error.return_code


def _http_status(exc: BaseException) -> int:
    if isinstance(exc, ControlPlaneError):
        return exc.status
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return 0


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


class ErrorPolicy:
    """Fixed table from return code to ``Disposition``.

    Unknown codes, and errors carrying no code at all, are ``FATAL``.

    Example usage::

        policy = ErrorPolicy.from_codes([RETURN_CODE_GROUP_IN_USE])
        if policy.classify(exc) is Disposition.RETRY_AS_PENDING:
            ...
    """

    def __init__(
        self,
        table: Mapping[str, Disposition] | None = None,
        *,
        not_found_codes: Iterable[str] = (),
    ) -> None:
        self._table = MappingProxyType(dict(table or {}))
        self._not_found_codes = frozenset(not_found_codes)

    @classmethod
    def from_codes(
        cls,
        retry_as_pending: Iterable[str],
        *,
        not_found_codes: Iterable[str] = (),
    ) -> ErrorPolicy:
        """Build a policy that retries-as-pending on each of *retry_as_pending*."""
        table = {code: Disposition.RETRY_AS_PENDING for code in retry_as_pending}
        return cls(table, not_found_codes=not_found_codes)

    @property
    def table(self) -> Mapping[str, Disposition]:
        """Return the code table (read-only)."""
        return self._table

    def classify(self, exc: BaseException) -> Disposition:
        """Classify a mutating-call failure."""
        code = error_code(exc)
        if code is None:
            return Disposition.FATAL
        return self._table.get(code, Disposition.FATAL)

    def is_not_found(self, exc: BaseException) -> bool:
        """Whether *exc* means the addressed resource is already gone."""
        if isinstance(exc, ResourceNotFoundError):
            return True
        if _http_status(exc) == HTTP_STATUS_NOT_FOUND:
            return True
        code = error_code(exc)
        return code is not None and code in self._not_found_codes
