# staterouter/transition/transition.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

from staterouter.core.errors import StateNotFoundError, TransitionError
from staterouter.core.node import RESERVED_RESOLVE_NAMES, Node
from staterouter.core.params import Param
from staterouter.core.path_factory import Path, PathFactory, TreeChanges
from staterouter.core.states import State, TargetState, match_state
from staterouter.resolve.resolvable import Resolvable
from staterouter.transition.hook_builder import HookBuilder
from staterouter.transition.hook_registry import HookRegistry, HookType
from staterouter.transition.rejection import REJECT, is_rejection
from staterouter.transition.transition_hook import ExecutionMode, HookOptions, TransitionHook, discard_results, settle

if TYPE_CHECKING:
    from staterouter.transition.transition_service import TransitionService

logger = logging.getLogger(__name__)

# Process-wide id sequence. Starts at 0, only advanced by Transition.__init__, never reset.
_transition_ids = itertools.count()


class _Deferred:
    """
    Single-assignment outcome. The future is created on first use so a
    transition can be built and inspected outside a running event loop.
    """

    def __init__(self) -> None:
        self._future: Optional[asyncio.Future] = None

    @property
    def promise(self) -> asyncio.Future:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    def resolve(self, value: Any) -> bool:
        """Settle with `value`. Returns False if already settled."""
        if self.promise.done():
            return False
        self.promise.set_result(value)
        return True

    def reject(self, reason: BaseException) -> bool:
        if self.promise.done():
            return False
        self.promise.set_exception(reason)
        return True


class Transition:
    """
    One attempt to move from a path of states to a target state.

    Construction computes the tree changes (which states are exited, retained
    and entered) and binds resolve contexts to the destination path. `run()`
    then drives the hook pipeline and settles `promise` exactly once.
    """

    def __init__(
        self, from_path: Path, target_state: TargetState, transition_service: "TransitionService"
    ) -> None:
        """
        :param from_path: The path being left; its last node is the "from" state.
        :param target_state: Destination state, params and transition options.
        :param transition_service: Supplies global hooks and view configuration.
        :raises TransitionError: If the target is invalid (e.g. unknown state).
        """
        if not target_state.valid():
            raise TransitionError(target_state.error())

        self._transition_service = transition_service
        self._deferred = _Deferred()
        self._hook_registry = HookRegistry()
        # Without a current() accessor from the caller, a transition considers itself current
        self._owns_current = "current" not in target_state.options()
        self._options: Dict[str, Any] = {"current": lambda: self, **target_state.options()}
        self.id = next(_transition_ids)
        self.success: Optional[bool] = None
        self._chain_task: Optional[asyncio.Task] = None
        self._terminal_task: Optional[asyncio.Task] = None

        to_path = PathFactory.build_to_path(from_path, target_state)
        to_path = PathFactory.apply_view_configs(transition_service.view_config_factory, to_path)
        self._tree_changes = PathFactory.tree_changes(from_path, to_path, self._options.get("reload_state"))
        PathFactory.bind_transition_resolve(self._tree_changes, self)

    @property
    def promise(self) -> asyncio.Future:
        """Settles with this transition on success, or with the rejection reason."""
        return self._deferred.promise

    def tree_changes(self) -> TreeChanges:
        return self._tree_changes

    def is_active(self) -> bool:
        return self is self._options["current"]()

    def _to_node(self) -> Node:
        return self._tree_changes.to[-1]

    def _from_node(self) -> Optional[Node]:
        return self._tree_changes.from_[-1] if self._tree_changes.from_ else None

    def to(self) -> State:
        return self._to_node().state

    def from_(self) -> Optional[State]:
        node = self._from_node()
        return node.state if node else None

    def matches(self, compare: Union["Transition", Dict[str, Any]]) -> bool:
        """
        True if this transition goes to and comes from states matching
        `compare`: another transition, or a dict of `to`/`from` criteria.
        """
        if isinstance(compare, Transition):
            from_state = compare.from_()
            return self.matches({"to": compare.to().name, "from": from_state.name if from_state else None})
        to_criterion, from_criterion = compare.get("to"), compare.get("from")
        if to_criterion and not match_state(self.to(), to_criterion):
            return False
        if from_criterion:
            from_state = self.from_()
            if from_state is None or not match_state(from_state, from_criterion):
                return False
        return True

    def params(self, pathname: str = "to") -> Dict[str, Any]:
        """Merged parameter values of one of the tree-change paths."""
        values: Dict[str, Any] = {}
        for node in self._tree_changes.path(pathname):
            values.update(node.param_values)
        return values

    def resolves(self) -> Dict[str, Any]:
        """Settled resolve data visible at the destination; pending resolves are omitted."""
        resolvables = self._to_node().resolve_context.get_resolvables()
        return {name: r.data for name, r in resolvables.items() if r.resolved}

    def add_resolves(self, resolves: Dict[str, Callable[..., Any]], state: Union[str, State, None] = None) -> None:
        """
        Add resolves to the node of `state` in the to path.

        :param resolves: Mapping of resolve name to factory function.
        :param state: State (or state name) receiving them; defaults to the root.
        """
        to_path = self._tree_changes.to
        if state is None:
            target = to_path[0]
        else:
            name = state.name if isinstance(state, State) else state
            target = next((node for node in to_path if node.state.name == name), None)
            if target is None:
                raise StateNotFoundError(f"State '{name}' is not in the to path of {self}")
        self._to_node().resolve_context.add_resolvables(Resolvable.make_resolvables(resolves), target.state)

    def previous(self) -> Optional["Transition"]:
        """The transition this one was redirected from, if any."""
        return self._options.get("previous")

    def options(self) -> Dict[str, Any]:
        return self._options

    def entering(self) -> List[State]:
        return [node.state for node in self._tree_changes.entering]

    def exiting(self) -> List[State]:
        """States exited by this transition, deepest first."""
        return [node.state for node in reversed(self._tree_changes.exiting)]

    def retained(self) -> List[State]:
        return [node.state for node in self._tree_changes.retained]

    def views(self, pathname: str = "entering", state: Optional[State] = None) -> List[Any]:
        path = self._tree_changes.path(pathname)
        if state is not None:
            path = [node for node in path if node.state is state]
        return [view for node in path for view in node.views]

    def hook_registry(self) -> HookRegistry:
        return self._hook_registry

    def on(self, hook_type: Union[HookType, str], criteria, callback, priority: int = 0) -> Callable[[], None]:
        """Register a hook that applies to this transition only."""
        return self._hook_registry.on(hook_type, criteria, callback, priority)

    def redirect(self, target_state: TargetState) -> "Transition":
        """
        Create the transition replacing this one. Resolvables of states shared
        by both to paths are carried over, so data already fetched is reused.
        """
        inherited = {k: v for k, v in self.options().items() if not (k == "current" and self._owns_current)}
        new_options = {**inherited, **target_state.options(), "previous": self}
        target_state = TargetState(target_state.identifier(), target_state.state(), target_state.params(), new_options)
        redirect_to = Transition(self._tree_changes.from_, target_state, self._transition_service)
        reload_state: Optional[State] = new_options.get("reload_state")

        redirected_path = self._tree_changes.to
        copy_resolves_for = [
            node
            for node in Node.matching(redirect_to.tree_changes().to, redirected_path)
            if reload_state is None or not node.state.includes(reload_state.name)
        ]
        for idx, node in enumerate(copy_resolves_for):
            node.resolves.update(
                {k: v for k, v in redirected_path[idx].resolves.items() if k not in RESERVED_RESOLVE_NAMES}
            )
        return redirect_to

    def _changed_params(self) -> Optional[List[Param]]:
        """
        Params that differ between the to and from paths, or None when the
        leaf state changes, a reload was requested or any state is entered or
        exited. Recomputed on every call; the tree changes never change, so
        repeated calls agree.
        """
        to, from_ = self._tree_changes.to, self._tree_changes.from_
        from_node = self._from_node()
        if self._options.get("reload") or self._options.get("reload_state") is not None:
            return None
        if from_node is None or to[-1].state is not from_node.state:
            return None
        if self._tree_changes.entering or self._tree_changes.exiting:
            return None
        changes: List[Param] = []
        for to_node, from_node in zip(to, from_):
            changes.extend(Param.changed(to_node.param_schema, to_node.param_values, from_node.param_values))
        return changes

    def dynamic(self) -> bool:
        """True if no state is entered or exited but a dynamic param changed."""
        changes = self._changed_params()
        return bool(changes) and any(param.dynamic for param in changes)

    def ignored(self) -> bool:
        """True if no state is entered or exited and no param changed."""
        changes = self._changed_params()
        return changes is not None and not changes

    def hook_builder(self) -> HookBuilder:
        return HookBuilder(
            self._transition_service,
            self,
            HookOptions(transition=self, current=self._options["current"]),
        )

    def run(self) -> asyncio.Future:
        """
        Run the transition. Must be called from a running event loop.

        Before hooks run synchronously; any rejection they produce settles the
        outcome at once. Otherwise the asynchronous hooks run one after another
        in a task. Returns the outcome future.
        """
        hook_builder = self.hook_builder()

        sync_result = TransitionHook.run_synchronous_hooks(hook_builder.get_on_before_hooks())
        if is_rejection(sync_result):
            self._settle(hook_builder, sync_result.reason)
            return self.promise

        if not self.valid():
            discard_results([sync_result])
            self._settle(hook_builder, REJECT.invalid(self.error()).reason)
            return self.promise

        if self.ignored():
            logger.debug("%s ignored: no states or params changed", self)
            discard_results([sync_result])
            self._settle(hook_builder, REJECT.ignored().reason)
            return self.promise

        logger.debug("%s started", self)
        self._chain_task = asyncio.ensure_future(self._run_async_hooks(hook_builder, sync_result))
        return self.promise

    async def _run_async_hooks(self, hook_builder: HookBuilder, sync_result: Any) -> None:
        try:
            await settle(sync_result)
            for step in hook_builder.async_hooks():
                await settle(step.invoke_step())
        except Exception as error:
            self.success = False
            logger.debug("%s failed: %s", self, error)
            self._settle(hook_builder, error)
        else:
            self.success = True
            logger.debug("%s succeeded", self)
            self._settle(hook_builder)

    def _settle(self, hook_builder: HookBuilder, error: Optional[BaseException] = None) -> None:
        # Success and error hooks run once the outcome is fixed, before anyone awaiting it resumes
        settled = self._deferred.resolve(self) if error is None else self._deferred.reject(error)
        if settled:
            self._run_terminal_hooks(hook_builder, error)

    def _run_terminal_hooks(self, hook_builder: HookBuilder, error: Optional[BaseException]) -> None:
        if error is None:
            hooks, locals_ = hook_builder.get_on_success_hooks(), {}
        else:
            hooks, locals_ = hook_builder.get_on_error_hooks(), {"error": error}
        result = TransitionHook.run_synchronous_hooks(hooks, locals_, ExecutionMode.SWALLOW_ERRORS)
        if result is not None and not is_rejection(result):
            self._terminal_task = asyncio.ensure_future(self._settle_terminal(result))

    async def _settle_terminal(self, result: Any) -> None:
        try:
            await result
        except Exception:
            logger.exception("Swallowed exception from terminal hook of %s", self)

    def valid(self) -> bool:
        return not self.error()

    def error(self) -> Optional[str]:
        """Why the transition is invalid, or None."""
        state = self.to()
        if state.abstract:
            return f"Cannot transition to abstract state '{state.name}'"
        if not Param.validates_all(state.parameters(), self.params()):
            return f"Param values not valid for state '{state.name}'"
        return None

    def __str__(self) -> str:
        from_state = self.from_()
        from_name = from_state.name if from_state else ""
        # "(X) " flags an invalid destination
        to_valid = "" if self.valid() else "(X) "
        from_params = _to_json(self.params("from"))
        to_params = _to_json(self.params())
        return f"Transition#{self.id}( '{from_name}'{from_params} -> {to_valid}'{self.to().name}'{to_params} )"

    __repr__ = __str__


def _to_json(params: Dict[str, Any]) -> str:
    if params.get("#") is None:
        params = {k: v for k, v in params.items() if k != "#"}
    return json.dumps(params, separators=(",", ":"), default=str)
