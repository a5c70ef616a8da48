# staterouter/core/path_factory.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Optional

from staterouter.core.node import TRANSITION_KEY, Node, node_for
from staterouter.core.states import State, TargetState
from staterouter.resolve.resolvable import Resolvable
from staterouter.resolve.resolve_context import ResolveContext

if TYPE_CHECKING:
    from staterouter.transition.transition import Transition

Path = List[Node]
ViewConfigFactory = Callable[[Node, Any], Any]


@dataclass(frozen=True)
class TreeChanges:
    """
    The five paths describing a transition. `exiting` is stored root first;
    consumers walk it in reverse.
    """

    from_: Path
    to: Path
    retained: Path
    exiting: Path
    entering: Path

    def path(self, name: str) -> Path:
        """Look a path up by its public name ("to", "from", ...)."""
        if name not in ("to", "from", "retained", "exiting", "entering"):
            raise KeyError(f"Unknown path name '{name}'")
        return getattr(self, "from_" if name == "from" else name)


class PathFactory:
    """Builds and compares paths of nodes."""

    @staticmethod
    def build_path(target: TargetState) -> Path:
        params = target.params()
        return [Node(state, params) for state in target.state().path]

    @staticmethod
    def build_to_path(from_path: Path, target: TargetState) -> Path:
        """
        Build the path to `target`. With the `inherit` option, params the
        target does not specify are carried over from `from_path`.
        """
        to_path = PathFactory.build_path(target)
        if target.options().get("inherit"):
            to_path = PathFactory.inherit_params(from_path, to_path, target.params().keys())
        return to_path

    @staticmethod
    def inherit_params(from_path: Path, to_path: Path, to_keys: Iterable[str] = ()) -> Path:
        """
        Return a copy of `to_path` where each node's values are, in increasing
        precedence: its own values, the values of the same state in
        `from_path`, then the explicitly requested `to_keys` values.
        """
        to_keys = set(to_keys)

        def inherited(to_node: Node) -> Node:
            incoming = {k: v for k, v in to_node.param_values.items() if k in to_keys}
            own = {k: v for k, v in to_node.param_values.items() if k not in to_keys}
            from_node = node_for(from_path, to_node.state)
            own.update(from_node.param_values if from_node else {})
            own.update(incoming)
            return Node(to_node.state, own)

        return [inherited(node) for node in to_path]

    @staticmethod
    def apply_view_configs(view_config_factory: Optional[ViewConfigFactory], path: Path) -> Path:
        """Replace each node's view declarations with the configs built for them."""
        if view_config_factory is None:
            return path
        for node in path:
            node.views = [view_config_factory(node, view) for view in node.state.views]
        return path

    @staticmethod
    def tree_changes(from_path: Path, to_path: Path, reload_state: Optional[State] = None) -> TreeChanges:
        """
        Diff two paths. Leading nodes with the same state and the same
        non-dynamic params are retained, stopping at `reload_state`.
        """
        keep = 0
        limit = min(len(from_path), len(to_path))
        while keep < limit and from_path[keep].state is not reload_state and from_path[keep].equals(to_path[keep]):
            keep += 1

        retained = from_path[:keep]
        exiting = from_path[keep:]
        entering = to_path[keep:]
        # Retained nodes keep their resolvables but take the new param values
        retained_with_to_params = [Node.clone(node, to_path[idx].param_values) for idx, node in enumerate(retained)]
        to = retained_with_to_params + entering
        return TreeChanges(from_=from_path, to=to, retained=retained, exiting=exiting, entering=entering)

    @staticmethod
    def bind_transition_resolve(tree_changes: TreeChanges, transition: "Transition") -> None:
        """Expose `transition` as a resolvable at the root and bind resolve contexts to the to path."""
        root = tree_changes.to[0]
        root.resolves[TRANSITION_KEY] = Resolvable(TRANSITION_KEY, lambda: transition, transition)
        PathFactory.bind_resolve_contexts(tree_changes.to)

    @staticmethod
    def bind_resolve_contexts(path: Path) -> Path:
        context = ResolveContext(path)
        for node in path:
            node.resolve_context = context.isolate_root_to(node.state)
        return path
