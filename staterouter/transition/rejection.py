# staterouter/transition/rejection.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from staterouter.core.errors import RouterError


class RejectType(Enum):
    """Why a transition did not succeed."""

    SUPERSEDED = "superseded"
    ABORTED = "aborted"
    INVALID = "invalid"
    IGNORED = "ignored"
    REDIRECTED = "redirected"


class TransitionRejection(RouterError):
    """
    The reason a transition's outcome was rejected. `detail` carries the
    payload: the newer transition, the redirect target, the hook's exception
    or an error message.
    """

    def __init__(self, type: RejectType, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.type = type
        self.message = message
        self.detail = detail

    @property
    def redirected(self) -> bool:
        return self.type is RejectType.REDIRECTED

    def __str__(self) -> str:
        detail = f", detail: {self.detail}" if self.detail is not None else ""
        return f"TransitionRejection(type: {self.type.value}, message: {self.message}{detail})"


@dataclass(frozen=True)
class Rejection:
    """
    A hook step result that stops the pipeline. It is a value rather than a
    raised exception so a synchronous batch can collect it and keep the first.
    """

    reason: TransitionRejection


def is_rejection(result: Any) -> Optional[Rejection]:
    """Return `result` if it is a Rejection, otherwise None."""
    return result if isinstance(result, Rejection) else None


class RejectFactory:
    """Builds the Rejection for each member of the rejection taxonomy."""

    def superseded(self, detail: Any = None) -> Rejection:
        message = "The transition has been superseded by a different transition (see detail)."
        return Rejection(TransitionRejection(RejectType.SUPERSEDED, message, detail))

    def redirected(self, detail: Any = None) -> Rejection:
        message = "The transition has been redirected to a new target (see detail)."
        return Rejection(TransitionRejection(RejectType.REDIRECTED, message, detail))

    def invalid(self, detail: Any = None) -> Rejection:
        message = "This transition is invalid (see detail)"
        return Rejection(TransitionRejection(RejectType.INVALID, message, detail))

    def ignored(self, detail: Any = None) -> Rejection:
        message = "The transition was ignored."
        return Rejection(TransitionRejection(RejectType.IGNORED, message, detail))

    def aborted(self, detail: Any = None) -> Rejection:
        message = "The transition has been aborted."
        return Rejection(TransitionRejection(RejectType.ABORTED, message, detail))


REJECT = RejectFactory()
