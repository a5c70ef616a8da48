# staterouter/transition/transition_service.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from staterouter.core.errors import TransitionError
from staterouter.core.node import Node, node_for
from staterouter.core.path_factory import Path, ViewConfigFactory
from staterouter.core.states import State, StateRegistry, TargetState
from staterouter.resolve.policy import ResolvePolicy
from staterouter.transition.hook_registry import HookRegistry, HookType
from staterouter.transition.rejection import RejectType, TransitionRejection
from staterouter.transition.transition import Transition

logger = logging.getLogger(__name__)

DEFAULT_MAX_REDIRECTS = 20
BUILTIN_HOOK_PRIORITY = 1000


def eager_resolve_path(transition: Transition):
    """Start hook: resolve every EAGER resolvable of the destination path."""
    leaf = transition.tree_changes().to[-1]
    return leaf.resolve_context.resolve_path({"resolve_policy": ResolvePolicy.EAGER, "transition": transition})


def lazy_resolve_entering_state(state: State, transition: Transition):
    """Enter hook: resolve the LAZY (and EAGER) resolvables of the state being entered."""
    node = node_for(transition.tree_changes().entering, state)
    return node.resolve_context.resolve_path_element(
        node.state, {"resolve_policy": ResolvePolicy.LAZY, "transition": transition}
    )


class TransitionService:
    """
    Creates and runs transitions. Owns the global hook registry, keeps track
    of the active transition (the one every other in-flight transition is
    superseded by) and of the path the last successful transition reached.
    """

    def __init__(
        self,
        registry: Optional[StateRegistry] = None,
        view_config_factory: Optional[ViewConfigFactory] = None,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
    ) -> None:
        """
        :param registry: Used to look up target states by name.
        :param view_config_factory: Called as factory(node, view) for every view
                                    declared on a state in the destination path.
        :param max_redirects: Redirects followed by transition_to before giving up.
        """
        self.registry = registry or StateRegistry()
        self.view_config_factory = view_config_factory
        self.max_redirects = max_redirects
        self.transition: Optional[Transition] = None
        self.current_path: Path = []
        self._hook_registry = HookRegistry()

        self._hook_registry.on(HookType.START, {}, eager_resolve_path, BUILTIN_HOOK_PRIORITY)
        self._hook_registry.on(HookType.ENTER, {}, lazy_resolve_entering_state, BUILTIN_HOOK_PRIORITY)

    def hook_registry(self) -> HookRegistry:
        return self._hook_registry

    def on(self, hook_type: Union[HookType, str], criteria, callback, priority: int = 0) -> Callable[[], None]:
        """Register a hook for every transition created by this service."""
        return self._hook_registry.on(hook_type, criteria, callback, priority)

    def current(self) -> Optional[Transition]:
        return self.transition

    def start_at(self, state: Union[str, State], params: Optional[Dict[str, Any]] = None) -> Path:
        """Place the service at `state` without running any hooks."""
        target = self.registry.target(state, params)
        if not target.valid():
            raise TransitionError(target.error())
        self.current_path = [Node(s, params) for s in target.state().path]
        return self.current_path

    def create(self, from_path: Path, target: TargetState) -> Transition:
        return Transition(from_path, target, self)

    def target(
        self,
        identifier: Union[str, State],
        params: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> TargetState:
        """Build a target state, filling in the options this service relies on."""
        options = dict(options or {})
        options["current"] = self.current
        reload = options.get("reload")
        if reload and "reload_state" not in options:
            if reload is True:
                options["reload_state"] = self.current_path[0].state if self.current_path else None
            else:
                options["reload_state"] = self.registry.get(reload)
        return self.registry.target(identifier, params, options)

    async def transition_to(
        self,
        identifier: Union[str, State, TargetState],
        params: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Transition:
        """
        Run a transition from the current path, following redirects.

        :return: The transition that succeeded.
        :raises TransitionRejection: If the transition (or its last redirect) was rejected.
        :raises TransitionError: If the target is invalid.
        """
        if isinstance(identifier, TargetState):
            target_options = {"current": self.current, **identifier.options()}
            target = TargetState(identifier.identifier(), identifier.state(), identifier.params(), target_options)
        else:
            target = self.target(identifier, params, options)
        transition = self.create(self.current_path, target)
        redirects: List[Transition] = []

        while True:
            self.transition = transition
            try:
                await transition.run()
            except TransitionRejection as rejection:
                if rejection.type is not RejectType.REDIRECTED:
                    raise
                if len(redirects) >= self.max_redirects:
                    raise TransitionError(f"Too many redirects ({self.max_redirects}) starting with {redirects[0]}")
                logger.debug("%s redirected to %s", transition, rejection.detail)
                redirects.append(transition)
                transition = transition.redirect(rejection.detail)
                continue

            if self.transition is transition:
                self.current_path = transition.tree_changes().to
            return transition
