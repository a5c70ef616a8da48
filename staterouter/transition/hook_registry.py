# staterouter/transition/hook_registry.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

from staterouter.core.states import match_state

if TYPE_CHECKING:
    from staterouter.core.node import Node
    from staterouter.core.path_factory import TreeChanges

MATCH_KEYS = ("to", "from", "exiting", "retained", "entering")


class HookType(Enum):
    """Points in the transition lifecycle where hooks can be registered."""

    BEFORE = "before"
    START = "start"
    EXIT = "exit"
    RETAIN = "retain"
    ENTER = "enter"
    FINISH = "finish"
    SUCCESS = "success"
    ERROR = "error"


class EventHook:
    """
    A registered hook: a callback, the criteria selecting which transitions
    (and which path nodes) it applies to, and its priority.
    """

    def __init__(
        self,
        match_criteria: Optional[Dict[str, Any]],
        callback: Callable[..., Any],
        priority: int = 0,
    ) -> None:
        """
        :param match_criteria: Keys from MATCH_KEYS mapped to a state criterion
                               (see match_state). Missing keys match anything.
        :param callback: The hook function.
        :param priority: Higher priorities run first among hooks for the same node.
        """
        unknown = set(match_criteria or {}) - set(MATCH_KEYS)
        if unknown:
            raise ValueError(f"Unknown match criteria keys: {sorted(unknown)}")
        self.match_criteria = {key: True for key in MATCH_KEYS}
        self.match_criteria.update(match_criteria or {})
        self.callback = callback
        self.priority = priority

    @staticmethod
    def _matching_nodes(nodes: List["Node"], criterion: Any) -> Optional[List["Node"]]:
        if criterion is True:
            return nodes
        matching = [node for node in nodes if match_state(node.state, criterion)]
        return matching or None

    def matches(self, tree_changes: "TreeChanges") -> Optional[Dict[str, List["Node"]]]:
        """
        Return the matching nodes per path name, or None unless every
        criterion matched something.
        """
        candidates = {
            "to": tree_changes.to[-1:],
            "from": tree_changes.from_[-1:],
            "exiting": tree_changes.exiting,
            "retained": tree_changes.retained,
            "entering": tree_changes.entering,
        }
        matches = {key: self._matching_nodes(candidates[key], self.match_criteria[key]) for key in MATCH_KEYS}
        if any(nodes is None for nodes in matches.values()):
            return None
        return matches

    def __repr__(self) -> str:
        name = getattr(self.callback, "__qualname__", repr(self.callback))
        return f"<EventHook {name} priority={self.priority}>"


class HookRegistry:
    """
    Stores registered hooks per HookType. Both the transition service (global
    hooks) and each transition (hooks for that transition only) own one.
    """

    def __init__(self) -> None:
        self._hooks: Dict[HookType, List[EventHook]] = {hook_type: [] for hook_type in HookType}

    def on(
        self,
        hook_type: Union[HookType, str],
        criteria: Optional[Dict[str, Any]],
        callback: Callable[..., Any],
        priority: int = 0,
    ) -> Callable[[], None]:
        """
        Register a hook.

        :return: A function that removes the hook again.
        """
        hook_type = HookType(hook_type)
        event_hook = EventHook(criteria, callback, priority)
        self._hooks[hook_type].append(event_hook)

        def deregister() -> None:
            if event_hook in self._hooks[hook_type]:
                self._hooks[hook_type].remove(event_hook)

        return deregister

    def get_hooks(self, hook_type: Union[HookType, str]) -> List[EventHook]:
        return list(self._hooks[HookType(hook_type)])

    def on_before(self, criteria, callback, priority: int = 0) -> Callable[[], None]:
        return self.on(HookType.BEFORE, criteria, callback, priority)

    def on_start(self, criteria, callback, priority: int = 0) -> Callable[[], None]:
        return self.on(HookType.START, criteria, callback, priority)

    def on_exit(self, criteria, callback, priority: int = 0) -> Callable[[], None]:
        return self.on(HookType.EXIT, criteria, callback, priority)

    def on_retain(self, criteria, callback, priority: int = 0) -> Callable[[], None]:
        return self.on(HookType.RETAIN, criteria, callback, priority)

    def on_enter(self, criteria, callback, priority: int = 0) -> Callable[[], None]:
        return self.on(HookType.ENTER, criteria, callback, priority)

    def on_finish(self, criteria, callback, priority: int = 0) -> Callable[[], None]:
        return self.on(HookType.FINISH, criteria, callback, priority)

    def on_success(self, criteria, callback, priority: int = 0) -> Callable[[], None]:
        return self.on(HookType.SUCCESS, criteria, callback, priority)

    def on_error(self, criteria, callback, priority: int = 0) -> Callable[[], None]:
        return self.on(HookType.ERROR, criteria, callback, priority)
