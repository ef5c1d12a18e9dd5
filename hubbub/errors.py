"""
hubbub.errors — Failure Reasons & Results
==========================================

Engine operations never raise for expected business conditions.  They
return a :class:`Result` carrying either a value or a :class:`Reason`, and
the request layer maps the reason to a message via :attr:`Reason.message`.

Only :class:`StoreUnavailable` is fatal: it propagates to the caller and is
never retried here.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

__all__ = [
    "ErrorKind",
    "HubbubError",
    "Reason",
    "Result",
    "StoreUnavailable",
]


class HubbubError(Exception):
    """Base class for hard failures raised by the engine."""


class StoreUnavailable(HubbubError):
    """The backing store could not be reached (connection lost, timeout)."""


class ErrorKind(enum.StrEnum):
    """Broad category of a business failure."""
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


class Reason(enum.StrEnum):
    """Tagged failure reasons returned by engine operations."""
    INVALID_VOTE_TYPE = "invalid_vote_type"
    INVALID_INPUT = "invalid_input"
    PASSWORD_TOO_SHORT = "password_too_short"
    INVALID_URL = "invalid_url"
    NOT_FOUND = "not_found"
    NO_MATCH = "no_match"
    NOT_AUTHOR = "not_author"
    EDIT_WINDOW_EXPIRED = "edit_window_expired"
    INSUFFICIENT_KARMA = "insufficient_karma"
    DUPLICATE_VOTE = "duplicate_vote"
    INVALID_OR_DUPLICATE = "invalid_or_duplicate"
    USERNAME_TAKEN = "username_taken"
    URL_LOCKED = "url_locked"
    RATE_LIMITED = "rate_limited"
    SUBMITTED_TOO_RECENTLY = "submitted_too_recently"

    @property
    def kind(self) -> ErrorKind:
        return _REASON_KIND[self]

    @property
    def message(self) -> str:
        return _REASON_MESSAGE[self]


_REASON_KIND: dict[Reason, ErrorKind] = {
    Reason.INVALID_VOTE_TYPE: ErrorKind.VALIDATION,
    Reason.INVALID_INPUT: ErrorKind.VALIDATION,
    Reason.PASSWORD_TOO_SHORT: ErrorKind.VALIDATION,
    Reason.INVALID_URL: ErrorKind.VALIDATION,
    Reason.NOT_FOUND: ErrorKind.NOT_FOUND,
    Reason.NO_MATCH: ErrorKind.AUTHORIZATION,
    Reason.NOT_AUTHOR: ErrorKind.AUTHORIZATION,
    Reason.EDIT_WINDOW_EXPIRED: ErrorKind.AUTHORIZATION,
    Reason.INSUFFICIENT_KARMA: ErrorKind.AUTHORIZATION,
    Reason.DUPLICATE_VOTE: ErrorKind.CONFLICT,
    Reason.INVALID_OR_DUPLICATE: ErrorKind.CONFLICT,
    Reason.USERNAME_TAKEN: ErrorKind.CONFLICT,
    Reason.URL_LOCKED: ErrorKind.CONFLICT,
    Reason.RATE_LIMITED: ErrorKind.CONFLICT,
    Reason.SUBMITTED_TOO_RECENTLY: ErrorKind.CONFLICT,
}

_REASON_MESSAGE: dict[Reason, str] = {
    Reason.INVALID_VOTE_TYPE: "Vote must be either up or down.",
    Reason.INVALID_INPUT: "Missing or invalid parameters.",
    Reason.PASSWORD_TOO_SHORT: "Password is too short.",
    Reason.INVALID_URL: "We only accept http:// and https:// news.",
    Reason.NOT_FOUND: "No such news, comment or user.",
    Reason.NO_MATCH: "No match for the specified username / password pair.",
    Reason.NOT_AUTHOR: "Only the author can modify this item.",
    Reason.EDIT_WINDOW_EXPIRED: "Too late: the edit time has expired.",
    Reason.INSUFFICIENT_KARMA: "You don't have enough karma to vote.",
    Reason.DUPLICATE_VOTE: "Duplicated vote.",
    Reason.INVALID_OR_DUPLICATE: "Invalid parameters or duplicated vote.",
    Reason.USERNAME_TAKEN: "Username is busy. Please select a different one.",
    Reason.URL_LOCKED: "This URL was posted recently.",
    Reason.RATE_LIMITED: "Please wait some time before trying again.",
    Reason.SUBMITTED_TOO_RECENTLY: "You have submitted a story too recently.",
}


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Outcome of an engine operation: a value or a failure reason.

    ``detail`` carries optional context for the message (e.g. the number of
    seconds to wait before submitting again).
    """

    value: T | None = None
    error: Reason | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, reason: Reason, detail: str | None = None) -> Result[T]:
        return cls(error=reason, detail=detail)
