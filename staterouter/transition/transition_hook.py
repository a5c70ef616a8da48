# staterouter/transition/transition_hook.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, List, NamedTuple, Optional, Union

from staterouter.core.states import TargetState
from staterouter.transition.rejection import REJECT, Rejection, is_rejection

if TYPE_CHECKING:
    from staterouter.resolve.resolve_context import ResolveContext

logger = logging.getLogger(__name__)

# What a hook step may return: nothing, a stopping Rejection, or something to wait for
StepResult = Union[None, Rejection, Awaitable[Any]]


@dataclass
class HookOptions:
    """
    Invocation options for one TransitionHook.

    :param run_async: Resolve the hook's dependencies before calling it. When
                      False the hook is called immediately with whatever has settled.
    :param reject_if_superseded: Skip the hook if its transition is no longer current.
    :param current: Returns the presently active transition.
    :param transition: The transition this hook belongs to.
    """

    run_async: bool = True
    reject_if_superseded: bool = True
    current: Callable[[], Any] = lambda: None
    transition: Any = None
    trace_data: Dict[str, Any] = field(default_factory=dict)
    state_hook: bool = False


class ExecutionMode(Enum):
    """How run_synchronous_hooks treats a hook that raises."""

    ABORT_ON_ERROR = auto()  # stop and return an aborted rejection
    SWALLOW_ERRORS = auto()  # log and keep invoking the remaining hooks


class HookOutcome(Enum):
    SUPERSEDED = auto()
    ABORT = auto()
    REDIRECT = auto()
    AWAIT = auto()


class _ResultRule(NamedTuple):
    outcome: HookOutcome
    matches: Callable[[Any], bool]
    handle: Callable[[Any], StepResult]


async def settle(result: StepResult) -> Any:
    """Await a step result, raising the reason of a Rejection."""
    if is_rejection(result):
        raise result.reason
    if inspect.isawaitable(result):
        return await result
    return result


def discard_results(results: Iterable[Any]) -> None:
    # Coroutines that will never be awaited are closed to avoid runtime warnings
    for result in results:
        if inspect.iscoroutine(result):
            result.close()


async def _chain(awaitables: List[Awaitable[Any]]) -> Any:
    pending = list(awaitables)
    result = None
    try:
        while pending:
            result = await pending.pop(0)
    finally:
        discard_results(pending)
    return result


class TransitionHook:
    """
    Runs one hook function and turns its return value into a control signal
    for the transition: proceed, abort, redirect, or wait and decide again.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        locals_: Optional[Dict[str, Any]],
        resolve_context: "ResolveContext",
        options: Optional[HookOptions] = None,
    ) -> None:
        """
        :param fn: The hook function; its parameter names are injected.
        :param locals_: Values injected in addition to the visible resolvables.
        :param resolve_context: Context of the path node the hook runs for.
        :param options: Invocation options.
        """
        self.fn = fn
        self.locals = dict(locals_ or {})
        self.resolve_context = resolve_context
        self.options = options or HookOptions()
        # First match wins; supersession is checked before anything the hook returned
        self._result_rules = [
            _ResultRule(HookOutcome.SUPERSEDED, lambda _: self.is_superseded(), self._superseded),
            _ResultRule(HookOutcome.ABORT, lambda result: result is False, self._aborted),
            _ResultRule(HookOutcome.REDIRECT, lambda result: isinstance(result, TargetState), REJECT.redirected),
            _ResultRule(HookOutcome.AWAIT, inspect.isawaitable, self._await_hook_result),
        ]

    def is_superseded(self) -> bool:
        return self.options.current() is not self.options.transition

    def invoke_step(self, more_locals: Optional[Dict[str, Any]] = None) -> StepResult:
        """
        Invoke the hook. Synchronous hooks return their mapped result directly;
        asynchronous hooks return a coroutine producing it.
        """
        locals_ = {**self.locals, **(more_locals or {})}
        logger.debug("Invoking hook %s", self)

        if self.options.reject_if_superseded and self.is_superseded():
            return REJECT.superseded(self.options.current())

        invoke_options = {"transition": self.options.transition}
        if not self.options.run_async:
            result = self.resolve_context.invoke_now(self.fn, locals_, invoke_options)
            return self.handle_hook_result(result)
        return self._invoke_later(locals_, invoke_options)

    async def _invoke_later(self, locals_: Dict[str, Any], invoke_options: Dict[str, Any]) -> Any:
        result = await self.resolve_context.invoke_later(self.fn, locals_, invoke_options)
        return await settle(self.handle_hook_result(result))

    def handle_hook_result(self, result: Any) -> StepResult:
        """
        Map a hook's return value to a step result. None means the hook had no
        opinion; any value no rule matches also lets the transition proceed.
        """
        if result is None:
            return None
        for rule in self._result_rules:
            if rule.matches(result):
                logger.debug("Hook %s returned %r: %s", self, result, rule.outcome.name)
                return rule.handle(result)
        return None

    def _superseded(self, result: Any) -> Rejection:
        discard_results([result])
        return REJECT.superseded(self.options.current())

    def _aborted(self, _result: Any) -> Rejection:
        return REJECT.aborted("Hook aborted transition")

    async def _await_hook_result(self, awaitable: Awaitable[Any]) -> Any:
        value = await awaitable
        return await settle(self.handle_hook_result(value))

    def __str__(self) -> str:
        trace = self.options.trace_data
        hook_type = trace.get("hook_type", "internal")
        context = trace.get("context", "unknown")
        name = getattr(self.fn, "__qualname__", repr(self.fn))
        return f"{hook_type} context: {context}, {name[:200]}"

    @staticmethod
    def run_synchronous_hooks(
        hooks: Iterable["TransitionHook"],
        locals_: Optional[Dict[str, Any]] = None,
        mode: Union[ExecutionMode, bool] = ExecutionMode.ABORT_ON_ERROR,
    ) -> StepResult:
        """
        Invoke `hooks` in order.

        :param mode: ABORT_ON_ERROR stops at the first exception and returns an
                     aborted rejection wrapping it. SWALLOW_ERRORS logs the
                     exception and continues. True/False map to SWALLOW/ABORT.
        :return: The first rejection by list order, else one coroutine awaiting
                 every awaitable result in sequence, else None.
        """
        if isinstance(mode, bool):
            mode = ExecutionMode.SWALLOW_ERRORS if mode else ExecutionMode.ABORT_ON_ERROR

        results: List[Any] = []
        for hook in hooks:
            try:
                results.append(hook.invoke_step(locals_))
            except Exception as exception:
                if mode is ExecutionMode.ABORT_ON_ERROR:
                    discard_results(results)
                    return REJECT.aborted(exception)
                logger.exception("Swallowed exception during synchronous hook handler: %s", exception)

        rejections = [result for result in results if is_rejection(result)]
        if rejections:
            discard_results(results)
            return rejections[0]

        awaitables = [result for result in results if inspect.isawaitable(result)]
        return _chain(awaitables) if awaitables else None
