# staterouter/resolve/policy.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

if TYPE_CHECKING:
    from staterouter.resolve.resolvable import Resolvable


class ResolvePolicy(IntEnum):
    """
    How early a resolve is fetched. A request at one tier also resolves every
    tier above it, so EAGER resolves are included in a LAZY request.
    """

    JIT = 0  # only when something injects it
    LAZY = 1  # when its state is entered
    EAGER = 2  # when the transition starts


DEFAULT_RESOLVE_POLICY = ResolvePolicy.LAZY


def to_policy(value: Union[str, int, ResolvePolicy, None]) -> Optional[ResolvePolicy]:
    """Normalize a policy given by name, ordinal or enum member."""
    if value is None:
        return None
    if isinstance(value, str):
        return ResolvePolicy[value.upper()]
    return ResolvePolicy(value)


def get_policy(state_policy_conf: Any, resolvable: "Resolvable") -> ResolvePolicy:
    """
    Effective policy of `resolvable` on a state declaring `state_policy_conf`.

    A per-resolve entry wins over a state-level policy, which wins over
    DEFAULT_RESOLVE_POLICY.

    :param state_policy_conf: None, a state-level policy, or a mapping of resolve
                              name to policy.
    """
    if isinstance(state_policy_conf, Mapping):
        state_level, resolve_level = None, state_policy_conf
    else:
        state_level, resolve_level = state_policy_conf, {}
    # JIT is falsy, so test for None explicitly
    for candidate in (resolve_level.get(resolvable.name), state_level):
        policy = to_policy(candidate)
        if policy is not None:
            return policy
    return DEFAULT_RESOLVE_POLICY
