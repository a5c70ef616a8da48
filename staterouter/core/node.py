# staterouter/core/node.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from staterouter.core.errors import StateNotFoundError
from staterouter.core.params import Param
from staterouter.core.states import State
from staterouter.resolve.resolvable import Resolvable

if TYPE_CHECKING:
    from staterouter.resolve.resolve_context import ResolveContext

# Resolve names bound by the router itself rather than by state declarations
TRANSITION_KEY = "transition"
STATE_PARAMS_KEY = "state_params"
RESERVED_RESOLVE_NAMES = frozenset({TRANSITION_KEY, STATE_PARAMS_KEY})


class Node:
    """
    One level of a path: a state together with its parameter values, the
    resolvables visible at that level and its views.
    """

    def __init__(
        self,
        state: State,
        params: Optional[Dict[str, Any]] = None,
        resolves: Optional[Dict[str, Resolvable]] = None,
    ) -> None:
        """
        :param state: The state this node represents.
        :param params: Raw parameter values; only this state's own params are kept.
        :param resolves: Resolvables to use in place of fresh ones built from the
                         state's declarations.
        """
        self.state = state
        self.param_schema: List[Param] = state.parameters(inherit=False)
        self.param_values: Dict[str, Any] = Param.values(self.param_schema, params)
        self.resolves: Dict[str, Resolvable] = Resolvable.make_resolvables(state.resolve)
        self.resolves.update(resolves or {})
        values = dict(self.param_values)
        self.resolves[STATE_PARAMS_KEY] = Resolvable(STATE_PARAMS_KEY, lambda: values, values)
        self.views: List[Any] = list(state.views)
        self.resolve_context: Optional["ResolveContext"] = None

    def equals(self, other: "Node") -> bool:
        """Same state, and equal values for every non-dynamic param."""
        static_params = [p for p in self.param_schema if not p.dynamic]
        return self.state is other.state and Param.equals(static_params, self.param_values, other.param_values)

    def __repr__(self) -> str:
        return f"<Node {self.state.name} {self.param_values}>"

    @staticmethod
    def clone(node: "Node", params: Optional[Dict[str, Any]] = None) -> "Node":
        """Copy `node`, sharing its resolvables, optionally with new param values."""
        resolves = {k: v for k, v in node.resolves.items() if k != STATE_PARAMS_KEY}
        cloned = Node(node.state, node.param_values if params is None else params, resolves)
        cloned.views = list(node.views)
        return cloned

    @staticmethod
    def matching(first: List["Node"], second: List["Node"]) -> List["Node"]:
        """The leading nodes of `first` whose states equal those of `second` position by position."""
        matched = 0
        for a, b in zip(first, second):
            if a.state is not b.state:
                break
            matched += 1
        return first[:matched]


def node_for(path: List[Node], state: State) -> Optional[Node]:
    return next((node for node in path if node.state is state), None)


def sub_path(path: List[Node], state: State) -> List[Node]:
    """
    Return `path` from its root up to and including the node for `state`.

    :raises StateNotFoundError: If `state` is not in the path.
    """
    for idx, node in enumerate(path):
        if node.state is state:
            return path[: idx + 1]
    raise StateNotFoundError(f"The path element was not found for state: {state.name}")
