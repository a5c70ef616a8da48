# staterouter/transition/hook_builder.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any, List, NamedTuple

from staterouter.core.node import TRANSITION_KEY, Node, node_for, sub_path
from staterouter.resolve.resolve_context import ResolveContext
from staterouter.transition.hook_registry import EventHook, HookType
from staterouter.transition.transition_hook import HookOptions, TransitionHook

if TYPE_CHECKING:
    from staterouter.transition.transition import Transition
    from staterouter.transition.transition_service import TransitionService


class _HookTuple(NamedTuple):
    hook: EventHook
    node: Node
    transition_hook: TransitionHook


def _node_depth_then_priority(reverse_depth: bool = False):
    """Sort key: shallow nodes first (deep first when reversed), then higher priority first."""
    factor = -1 if reverse_depth else 1

    def key(item: _HookTuple):
        return (len(item.node.state.path) * factor, -item.hook.priority)

    return key


def _priority(item: _HookTuple):
    return -item.hook.priority


class HookBuilder:
    """
    Builds the TransitionHooks for each lifecycle phase of one transition out
    of the hooks registered on the transition itself and on its service.
    """

    def __init__(
        self, transition_service: "TransitionService", transition: "Transition", base_hook_options: HookOptions
    ) -> None:
        self._transition_service = transition_service
        self._transition = transition
        self._base_hook_options = base_hook_options
        self._tree_changes = transition.tree_changes()

    def get_on_before_hooks(self) -> List[TransitionHook]:
        return self._build_node_hooks(HookType.BEFORE, "to", _priority, run_async=False)

    def get_on_start_hooks(self) -> List[TransitionHook]:
        return self._build_node_hooks(HookType.START, "to", _priority)

    def get_on_exit_hooks(self) -> List[TransitionHook]:
        return self._build_node_hooks(HookType.EXIT, "exiting", _node_depth_then_priority(True), state_hook=True)

    def get_on_retain_hooks(self) -> List[TransitionHook]:
        return self._build_node_hooks(HookType.RETAIN, "retained", _node_depth_then_priority(), state_hook=True)

    def get_on_enter_hooks(self) -> List[TransitionHook]:
        return self._build_node_hooks(HookType.ENTER, "entering", _node_depth_then_priority(), state_hook=True)

    def get_on_finish_hooks(self) -> List[TransitionHook]:
        return self._build_node_hooks(HookType.FINISH, "to", _priority)

    def get_on_success_hooks(self) -> List[TransitionHook]:
        return self._build_node_hooks(
            HookType.SUCCESS, "to", _priority, run_async=False, reject_if_superseded=False
        )

    def get_on_error_hooks(self) -> List[TransitionHook]:
        return self._build_node_hooks(HookType.ERROR, "to", _priority, run_async=False, reject_if_superseded=False)

    def async_hooks(self) -> List[TransitionHook]:
        """Every asynchronous step, in pipeline order: start, exit, retain, enter, finish."""
        return [
            *self.get_on_start_hooks(),
            *self.get_on_exit_hooks(),
            *self.get_on_retain_hooks(),
            *self.get_on_enter_hooks(),
            *self.get_on_finish_hooks(),
        ]

    def _matching_hooks(self, hook_type: HookType) -> List[EventHook]:
        registries = [self._transition.hook_registry(), self._transition_service.hook_registry()]
        return [hook for registry in registries for hook in registry.get_hooks(hook_type)
                if hook.matches(self._tree_changes)]

    def _resolve_context_for(self, matching_nodes_prop: str, node: Node) -> ResolveContext:
        if matching_nodes_prop == "exiting":
            return ResolveContext(sub_path(self._tree_changes.from_, node.state))
        to_node = node_for(self._tree_changes.to, node.state)
        return to_node.resolve_context

    def _build_node_hooks(self, hook_type: HookType, matching_nodes_prop: str, sort_key, **overrides: Any):
        tuples: List[_HookTuple] = []
        for hook in self._matching_hooks(hook_type):
            for node in hook.matches(self._tree_changes)[matching_nodes_prop]:
                options = dataclasses.replace(
                    self._base_hook_options,
                    trace_data={"hook_type": hook_type.value, "context": node.state.name},
                    **overrides,
                )
                locals_ = {TRANSITION_KEY: self._transition}
                if options.state_hook:
                    locals_["state"] = node.state
                resolve_context = self._resolve_context_for(matching_nodes_prop, node)
                tuples.append(_HookTuple(hook, node, TransitionHook(hook.callback, locals_, resolve_context, options)))

        # sorted() is stable, so registration order breaks remaining ties
        return [item.transition_hook for item in sorted(tuples, key=sort_key)]
