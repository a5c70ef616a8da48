# staterouter/runtime/injector.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, List, Optional

from staterouter.core.errors import InjectionError

_INJECTABLE_KINDS = (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)


def inject(*names: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Declare a function's dependency names explicitly instead of reading them
    from its signature. The function is then called positionally.

        @inject("user", "transition")
        def hook(u, t): ...
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        fn.inject = list(names)
        return fn

    return decorator


def annotate(fn: Callable[..., Any]) -> List[str]:
    """
    Return the dependency names `fn` asks for, in declaration order.

    :param fn: Any callable. Positional-only and variadic parameters are not injectable.
    """
    explicit = getattr(fn, "inject", None)
    if explicit is not None:
        return list(explicit)
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return []
    return [p.name for p in signature.parameters.values() if p.kind in _INJECTABLE_KINDS]


def invoke(fn: Callable[..., Any], locals_: Optional[Dict[str, Any]] = None) -> Any:
    """
    Call `fn` with its dependencies taken from `locals_`.

    Parameters that have a default may be absent from `locals_`; any other
    missing name raises InjectionError.
    """
    locals_ = locals_ or {}
    explicit = getattr(fn, "inject", None)
    if explicit is not None:
        missing = [name for name in explicit if name not in locals_]
        if missing:
            raise InjectionError(f"Unknown dependencies {missing} for {_describe(fn)}")
        return fn(*(locals_[name] for name in explicit))

    kwargs = {}
    try:
        parameters = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        parameters = []
    for param in parameters:
        if param.kind not in _INJECTABLE_KINDS:
            continue
        if param.name in locals_:
            kwargs[param.name] = locals_[param.name]
        elif param.default is inspect.Parameter.empty:
            raise InjectionError(f"Unknown dependency '{param.name}' for {_describe(fn)}")
    return fn(**kwargs)


def _describe(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)
