# tests/unit/test_rejection.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from staterouter.transition.rejection import REJECT, Rejection, RejectType, TransitionRejection, is_rejection


@pytest.mark.parametrize(
    "factory,reject_type",
    [
        (REJECT.superseded, RejectType.SUPERSEDED),
        (REJECT.redirected, RejectType.REDIRECTED),
        (REJECT.invalid, RejectType.INVALID),
        (REJECT.ignored, RejectType.IGNORED),
        (REJECT.aborted, RejectType.ABORTED),
    ],
)
def test_factory_builds_typed_rejections(factory, reject_type):
    rejection = factory("payload")
    assert isinstance(rejection, Rejection)
    assert isinstance(rejection.reason, TransitionRejection)
    assert rejection.reason.type is reject_type
    assert rejection.reason.detail == "payload"
    assert rejection.reason.redirected is (reject_type is RejectType.REDIRECTED)


def test_rejection_str():
    reason = REJECT.aborted("Hook aborted transition").reason
    assert str(reason) == (
        "TransitionRejection(type: aborted, message: The transition has been aborted., "
        "detail: Hook aborted transition)"
    )
    assert str(REJECT.ignored().reason) == "TransitionRejection(type: ignored, message: The transition was ignored.)"


def test_is_rejection():
    rejection = REJECT.aborted()
    assert is_rejection(rejection) is rejection
    assert is_rejection(None) is None
    assert is_rejection(rejection.reason) is None
