# tests/unit/test_resolvable.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio

import pytest

from staterouter.resolve.policy import DEFAULT_RESOLVE_POLICY, ResolvePolicy, get_policy, to_policy
from staterouter.resolve.resolvable import Resolvable
from staterouter.resolve.resolve_context import ResolveContext


def test_policy_ordering():
    assert ResolvePolicy.JIT < ResolvePolicy.LAZY < ResolvePolicy.EAGER
    assert DEFAULT_RESOLVE_POLICY is ResolvePolicy.LAZY


def test_to_policy_normalizes():
    assert to_policy("eager") is ResolvePolicy.EAGER
    assert to_policy("JIT") is ResolvePolicy.JIT
    assert to_policy(1) is ResolvePolicy.LAZY
    assert to_policy(ResolvePolicy.EAGER) is ResolvePolicy.EAGER
    assert to_policy(None) is None


def test_get_policy_precedence():
    user = Resolvable("user", lambda: 1)
    assert get_policy(None, user) is ResolvePolicy.LAZY
    assert get_policy("EAGER", user) is ResolvePolicy.EAGER
    assert get_policy({"user": "JIT"}, user) is ResolvePolicy.JIT
    assert get_policy({"other": "EAGER"}, user) is ResolvePolicy.LAZY


def test_get_policy_resolve_level_jit_is_not_skipped():
    user = Resolvable("user", lambda: 1)
    assert get_policy({"user": ResolvePolicy.JIT}, user) is ResolvePolicy.JIT


def test_resolvable_declares_deps():
    r = Resolvable("orders", lambda user, transition: None)
    assert r.deps == ["user", "transition"]
    assert not r.resolved
    assert r.data is None


def test_pre_resolved_resolvable():
    r = Resolvable("value", lambda: 1, 42)
    assert r.resolved
    assert r.data == 42


def test_make_resolvables():
    resolvables = Resolvable.make_resolvables({"a": lambda: 1, "b": lambda a: a})
    assert list(resolvables) == ["a", "b"]
    assert resolvables["b"].name == "b"
    assert Resolvable.make_resolvables(None) == {}


@pytest.mark.asyncio
async def test_get_is_single_flight(calls):
    async def factory():
        calls.append("factory")
        await asyncio.sleep(0)
        return "data"

    r = Resolvable("user", factory)
    context = ResolveContext([])
    first = r.get(context)
    second = r.get(context)
    assert first is second
    assert await asyncio.gather(first, second) == ["data", "data"]
    assert await r.get(context) == "data"
    assert calls == ["factory"]
    assert r.resolved
    assert r.data == "data"


@pytest.mark.asyncio
async def test_pre_resolved_get_never_calls_factory(calls):
    r = Resolvable("user", lambda: calls.append("factory"), "cached")
    assert await r.get(ResolveContext([])) == "cached"
    assert calls == []


@pytest.mark.asyncio
async def test_factory_exception_propagates():
    def factory():
        raise ValueError("boom")

    r = Resolvable("user", factory)
    with pytest.raises(ValueError, match="boom"):
        await r.get(ResolveContext([]))
    assert not r.resolved
