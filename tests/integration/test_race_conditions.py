# tests/integration/test_race_conditions.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio

import pytest

from staterouter.transition.rejection import RejectType, TransitionRejection


@pytest.mark.asyncio
async def test_newer_transition_supersedes_pending_one(service, calls):
    gate = asyncio.Event()

    async def slow_start():
        calls.append("slow start")
        await gate.wait()

    service.on("start", {"to": "app.users"}, slow_start)
    service.on("enter", {}, lambda state, transition: calls.append((transition.id, state.name)))
    service.on("success", {}, lambda transition: calls.append(("success", transition.id)))

    first = asyncio.ensure_future(service.transition_to("app.users"))
    while "slow start" not in calls:
        await asyncio.sleep(0)
    pending = service.transition

    second = await service.transition_to("app.users.detail", {"user_id": 1})
    gate.set()

    with pytest.raises(TransitionRejection) as exc:
        await first
    assert exc.value.type is RejectType.SUPERSEDED
    assert exc.value.detail is second
    assert pending.success is False
    assert pending.promise.done()
    assert ("success", pending.id) not in calls
    assert (pending.id, "app.users") not in calls
    assert ("success", second.id) in calls
    assert service.current_path[-1].state.name == "app.users.detail"


@pytest.mark.asyncio
async def test_superseded_before_async_steps_start(service):
    first = service.create(service.current_path, service.target("app.users"))
    service.transition = first
    outcome = first.run()
    second = service.create(service.current_path, service.target("app.users.detail", {"user_id": 1}))
    service.transition = second

    with pytest.raises(TransitionRejection) as exc:
        await outcome
    assert exc.value.type is RejectType.SUPERSEDED
    assert first.success is False


@pytest.mark.asyncio
async def test_outcome_settles_exactly_once(service, calls):
    service.on("success", {}, lambda: calls.append("success"))
    service.on("error", {}, lambda: calls.append("error"))
    transition = service.create(service.current_path, service.target("app.users"))
    service.transition = transition
    assert await transition.run() is transition

    # later settlement attempts are ignored
    transition._settle(transition.hook_builder(), RuntimeError("late"))
    assert transition.promise.result() is transition
    assert calls == ["success"]


@pytest.mark.asyncio
async def test_concurrent_transitions_only_last_wins(service):
    targets = [("app.users", None), ("app.users.detail", {"user_id": 1}), ("app.users.detail", {"user_id": 2})]
    results = await asyncio.gather(
        *(service.transition_to(name, params) for name, params in targets), return_exceptions=True
    )
    assert [isinstance(r, TransitionRejection) and r.type is RejectType.SUPERSEDED for r in results] == [
        True,
        True,
        False,
    ]
    assert results[2].params()["user_id"] == 2
    assert service.current_path[-1].param_values == {"user_id": 2}
