# staterouter/resolve/resolve_context.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from staterouter.core.node import Node, node_for, sub_path
from staterouter.core.states import State
from staterouter.resolve.policy import DEFAULT_RESOLVE_POLICY, get_policy, to_policy
from staterouter.resolve.resolvable import Resolvable
from staterouter.runtime import injector

logger = logging.getLogger(__name__)


class ResolveContext:
    """
    Answers which named dependencies are visible at a node of a path and
    resolves them. A child's resolvable shadows a same-named one on any of
    its ancestors.

    A context is a view over a path; the nodes (and their `resolves`) are
    shared with every other context built over the same path.
    """

    def __init__(self, path: List[Node]) -> None:
        self._path = path

    @property
    def path(self) -> List[Node]:
        return list(self._path)

    def _node_for(self, state: State) -> Node:
        node = node_for(self._path, state)
        if node is None:
            # sub_path raises the descriptive error for us
            sub_path(self._path, state)
        return node

    def get_resolvables(
        self, state: Optional[State] = None, omit_own_locals: Iterable[str] = ()
    ) -> Dict[str, Resolvable]:
        """
        Fold the resolvables of every node from the root to `state`.

        :param state: Stop at this state's node; defaults to the leaf of the path.
        :param omit_own_locals: Names to skip on the target node only, exposing a
                                same-named ancestor resolvable instead.
        """
        path = sub_path(self._path, state) if state is not None else self._path
        omit = set(omit_own_locals)
        visible: Dict[str, Resolvable] = {}
        for idx, node in enumerate(path):
            is_last = idx == len(path) - 1
            for name, resolvable in node.resolves.items():
                if is_last and name in omit:
                    continue
                visible[name] = resolvable
        return visible

    def get_resolvables_for_fn(self, fn: Callable[..., Any]) -> Dict[str, Resolvable]:
        """Return the visible resolvables whose names `fn` declares as dependencies."""
        resolvables = self.get_resolvables()
        return {name: resolvables[name] for name in injector.annotate(fn) if name in resolvables}

    def isolate_root_to(self, state: State) -> "ResolveContext":
        return ResolveContext(sub_path(self._path, state))

    def owner_context(self, resolvable: Resolvable) -> "ResolveContext":
        """
        Return a context ending at the deepest node that owns `resolvable`.
        A resolvable always looks up its dependencies from its own node, never
        from a descendant that may redeclare the same name.
        """
        for node in reversed(self._path):
            if node.resolves.get(resolvable.name) is resolvable:
                return self.isolate_root_to(node.state)
        return self

    def add_resolvables(self, resolvables: Dict[str, Resolvable], state: State) -> None:
        """Merge `resolvables` into the node for `state`."""
        self._node_for(state).resolves.update(resolvables)

    def get_own_resolvables(self, state: State) -> Dict[str, Resolvable]:
        return dict(self._node_for(state).resolves)

    async def resolve_path(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Resolve every node of the path concurrently at the requested policy
        (`options["resolve_policy"]`, default LAZY) and merge the results.
        Any failure fails the whole path.
        """
        options = options or {}
        logger.debug(
            "Resolving path %s (policy: %s)",
            [node.state.name for node in self._path],
            options.get("resolve_policy", DEFAULT_RESOLVE_POLICY),
        )
        results = await asyncio.gather(*(self.resolve_path_element(node.state, options) for node in self._path))
        merged: Dict[str, Any] = {}
        for result in results:
            merged.update(result)
        return merged

    async def resolve_path_element(self, state: State, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Resolve the resolvables owned by the node for `state` whose effective
        policy is at or above the requested one.
        """
        options = options or {}
        requested = to_policy(options.get("resolve_policy"))
        if requested is None:
            requested = DEFAULT_RESOLVE_POLICY

        matching = {
            name: resolvable
            for name, resolvable in self.get_own_resolvables(state).items()
            if get_policy(state.resolve_policy, resolvable) >= requested
        }
        logger.debug("Resolving %s for state '%s' at %s", list(matching), state.name, requested.name)

        context = self.isolate_root_to(state)
        values = await asyncio.gather(*(resolvable.get(context, options) for resolvable in matching.values()))
        return dict(zip(matching, values))

    def invoke_now(
        self,
        fn: Callable[..., Any],
        locals_: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Call `fn` immediately. Resolvables that have not settled yet are
        injected as None; exceptions from `fn` propagate unchanged.
        """
        resolvables = self.get_resolvables_for_fn(fn)
        logger.debug("Invoking %r now at '%s' with %s", fn, self._leaf_name(), list(resolvables))
        injected = {name: (r.data if r.resolved else None) for name, r in resolvables.items()}
        injected.update(locals_ or {})
        return injector.invoke(fn, injected)

    async def invoke_later(
        self,
        fn: Callable[..., Any],
        locals_: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Resolve every dependency `fn` declares, then call it via invoke_now."""
        resolvables = self.get_resolvables_for_fn(fn)
        logger.debug("Invoking %r later at '%s' with %s", fn, self._leaf_name(), list(resolvables))
        await asyncio.gather(*(r.get(self.owner_context(r), options) for r in resolvables.values()))
        return self.invoke_now(fn, locals_, options)

    def _leaf_name(self) -> Optional[str]:
        return self._path[-1].state.name if self._path else None

    def __repr__(self) -> str:
        return f"<ResolveContext {[node.state.name for node in self._path]}>"
