# staterouter/resolve/resolvable.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from staterouter.runtime import injector

if TYPE_CHECKING:
    from staterouter.resolve.resolve_context import ResolveContext

logger = logging.getLogger(__name__)

_UNSET = object()


class Resolvable:
    """
    A named, lazily computed dependency. The factory runs at most once: the
    first `get()` starts it and every later `get()` returns the same future,
    so `data` is written exactly once.
    """

    def __init__(self, name: str, resolve_fn: Callable[..., Any], data: Any = _UNSET) -> None:
        """
        :param name: The name other functions use to inject this value.
        :param resolve_fn: Factory; its parameter names are its dependencies. May be async.
        :param data: A value that is already known. The factory will never run.
        """
        self.name = name
        self.resolve_fn = resolve_fn
        self.deps: List[str] = injector.annotate(resolve_fn)
        self.resolved = data is not _UNSET
        self.data: Any = data if self.resolved else None
        self.promise: Optional[asyncio.Future] = None

    def get(self, resolve_context: "ResolveContext", options: Optional[Dict[str, Any]] = None) -> asyncio.Future:
        """
        Return a future for this resolvable's value, starting the factory on
        the first call.

        :param resolve_context: The context supplying this resolvable's dependencies;
                                its leaf should be the node that owns this resolvable.
        """
        if self.promise is None:
            if self.resolved:
                self.promise = asyncio.get_running_loop().create_future()
                self.promise.set_result(self.data)
            else:
                self.promise = asyncio.ensure_future(self._resolve(resolve_context, options or {}))
        return self.promise

    async def _resolve(self, resolve_context: "ResolveContext", options: Dict[str, Any]) -> Any:
        # Hide our own name on the leaf so a same-named ancestor resolve is injected instead
        ancestors = resolve_context.get_resolvables(None, omit_own_locals={self.name})
        dep_resolvables = {name: ancestors[name] for name in self.deps if name in ancestors}
        logger.debug("Resolving '%s' (deps: %s)", self.name, list(dep_resolvables))

        values = await asyncio.gather(
            *(dep.get(resolve_context.owner_context(dep), options) for dep in dep_resolvables.values())
        )
        result = injector.invoke(self.resolve_fn, dict(zip(dep_resolvables, values)))
        if inspect.isawaitable(result):
            result = await result

        self.data = result
        self.resolved = True
        return result

    def __repr__(self) -> str:
        status = "resolved" if self.resolved else "pending"
        return f"<Resolvable {self.name} {status}>"

    @staticmethod
    def make_resolvables(resolves: Optional[Dict[str, Callable[..., Any]]]) -> Dict[str, "Resolvable"]:
        """Build a name -> Resolvable mapping from a name -> factory declaration."""
        return {name: Resolvable(name, fn) for name, fn in (resolves or {}).items()}
