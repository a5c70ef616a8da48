# staterouter/core/states.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union

from staterouter.core.errors import StateNotFoundError, ValidationError
from staterouter.core.params import Param


class State:
    """
    A node in the application's state tree. A state knows its parent, the
    parameters it declares, the resolves it contributes to the path and the
    views it renders. Identity is by object, not by name.
    """

    def __init__(
        self,
        name: str,
        parent: Optional["State"] = None,
        params: Optional[Dict[str, Any]] = None,
        resolve: Optional[Dict[str, Callable[..., Any]]] = None,
        resolve_policy: Any = None,
        abstract: bool = False,
        views: Optional[List[Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        :param name: Fully qualified, dot-separated state name.
        :param parent: The parent state, or None for a root state.
        :param params: Mapping of param id to a Param, a declaration dict or a default value.
        :param resolve: Mapping of resolve name to the factory function producing its value.
        :param resolve_policy: A policy for every resolve of this state, or a mapping of
                               resolve name to policy.
        :param abstract: Abstract states can be entered but never be a transition target.
        :param views: Opaque view declarations, passed through to the path nodes.
        :param data: Arbitrary user data.
        """
        if not name:
            raise ValidationError("State name must be a non-empty string")
        self.name = name
        self.parent = parent
        self.params: Dict[str, Param] = {pid: Param.from_config(pid, decl) for pid, decl in (params or {}).items()}
        self.resolve = dict(resolve or {})
        self.resolve_policy = resolve_policy
        self.abstract = abstract
        self.views = list(views or [])
        self.data = dict(data or {})

    @property
    def path(self) -> List["State"]:
        """Ancestry of this state, root first, ending with the state itself."""
        path = []
        current: Optional[State] = self
        while current is not None:
            path.append(current)
            current = current.parent
        return list(reversed(path))

    def includes(self, name: str) -> bool:
        """True if `name` is this state or one of its ancestors."""
        return any(state.name == name for state in self.path)

    def parameters(self, inherit: bool = True) -> List[Param]:
        """
        Return the params declared by this state.

        :param inherit: Also include the params declared by every ancestor.
        """
        if not inherit:
            return list(self.params.values())
        return [param for state in self.path for param in state.params.values()]

    def __repr__(self) -> str:
        return f"<State {self.name}>"


class TargetState:
    """
    Describes where a transition should go: a state identifier, its
    definition (if one was found), parameter values and transition options.
    """

    def __init__(
        self,
        identifier: Any,
        definition: Optional[State],
        params: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
        base: Any = None,
    ) -> None:
        self._identifier = identifier
        self._definition = definition
        self._params = dict(params or {})
        self._options = dict(options or {})
        self._base = base

    def identifier(self) -> Any:
        return self._identifier

    def name(self) -> str:
        if self._definition is not None:
            return self._definition.name
        return self._identifier.name if isinstance(self._identifier, State) else str(self._identifier)

    def state(self) -> Optional[State]:
        return self._definition

    def params(self) -> Dict[str, Any]:
        return dict(self._params)

    def options(self) -> Dict[str, Any]:
        return dict(self._options)

    def exists(self) -> bool:
        return self._definition is not None

    def valid(self) -> bool:
        return not self.error()

    def error(self) -> Optional[str]:
        if self._definition is None:
            if self._base is not None:
                return f"Could not resolve '{self.name()}' from state '{self._base}'"
            return f"No such state '{self.name()}'"
        return None

    def __repr__(self) -> str:
        return f"<TargetState {self.name()} {self._params}>"


class StateRegistry:
    """
    Holds the state tree. Parents must be registered before their children,
    so the registry can never contain a dangling or cyclic ancestry.
    """

    def __init__(self) -> None:
        self._states: Dict[str, State] = {}

    def register(self, state: State) -> State:
        """
        Add a state to the registry.

        :raises ValidationError: If the name is taken or the parent is unknown.
        """
        if state.name in self._states:
            raise ValidationError(f"State '{state.name}' is already registered")
        if state.parent is not None and self._states.get(state.parent.name) is not state.parent:
            raise ValidationError(f"Parent state '{state.parent.name}' must be registered first")
        self._states[state.name] = state
        return state

    def get(self, name: Union[str, State]) -> State:
        """
        :raises StateNotFoundError: If no state is registered under `name`.
        """
        if isinstance(name, State):
            name = name.name
        try:
            return self._states[name]
        except KeyError:
            raise StateNotFoundError(f"No such state '{name}'") from None

    def find(self, name: Union[str, State]) -> Optional[State]:
        if isinstance(name, State):
            return name if self._states.get(name.name) is name else None
        return self._states.get(name)

    def target(
        self,
        identifier: Union[str, State],
        params: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> TargetState:
        """Build a TargetState; unknown identifiers produce an invalid target."""
        return TargetState(identifier, self.find(identifier), params, options)

    def __contains__(self, name: object) -> bool:
        if isinstance(name, State):
            return self._states.get(name.name) is name
        return name in self._states

    def __len__(self) -> int:
        return len(self._states)


class Glob:
    """
    Matches dotted state names. `*` matches exactly one name segment and `**`
    matches any number of segments, including none.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self._segments = text.split(".")

    def matches(self, name: str) -> bool:
        return self._match(self._segments, name.split("."))

    @classmethod
    def _match(cls, pattern: List[str], parts: List[str]) -> bool:
        if not pattern:
            return not parts
        head, rest = pattern[0], pattern[1:]
        if head == "**":
            return any(cls._match(rest, parts[i:]) for i in range(len(parts) + 1))
        if not parts:
            return False
        if head == "*" or head == parts[0]:
            return cls._match(rest, parts[1:])
        return False

    @staticmethod
    def is_glob(text: str) -> bool:
        return "*" in text

    @classmethod
    def from_string(cls, text: str) -> Optional["Glob"]:
        return cls(text) if cls.is_glob(text) else None


def match_state(state: State, criterion: Any) -> bool:
    """
    Test a state against a hook match criterion.

    :param criterion: True (match anything), a state name or glob, a list of
                      names/globs, or a predicate taking the state.
    """
    if criterion is True:
        return True
    if callable(criterion):
        return bool(criterion(state))
    globs = [criterion] if isinstance(criterion, str) else list(criterion or [])
    for text in globs:
        glob = Glob.from_string(text)
        if (glob and glob.matches(state.name)) or (not glob and text == state.name):
            return True
    return False
