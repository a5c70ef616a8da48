# staterouter/core/params.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

from staterouter.core.errors import ValidationError

_UNSET = object()


class ParamType:
    """
    Describes how values of a parameter are checked and compared. The router
    only needs membership and equality; encoding belongs to URL matching.
    """

    def __init__(
        self,
        name: str,
        is_valid: Optional[Callable[[Any], bool]] = None,
        equals: Optional[Callable[[Any, Any], bool]] = None,
    ) -> None:
        """
        :param name: Type name used in declarations (e.g. "int").
        :param is_valid: Predicate returning True for acceptable values.
        :param equals: Equality used to detect changed values.
        """
        self.name = name
        self._is_valid = is_valid or (lambda value: True)
        self._equals = equals or (lambda a, b: a == b)

    def is_valid(self, value: Any) -> bool:
        return bool(self._is_valid(value))

    def equals(self, a: Any, b: Any) -> bool:
        return bool(self._equals(a, b))

    def __repr__(self) -> str:
        return f"ParamType({self.name!r})"


PARAM_TYPES: Dict[str, ParamType] = {
    "string": ParamType("string", lambda v: isinstance(v, str)),
    # bool is a subclass of int; reject it explicitly
    "int": ParamType("int", lambda v: isinstance(v, int) and not isinstance(v, bool)),
    "bool": ParamType("bool", lambda v: isinstance(v, bool)),
    "any": ParamType("any"),
}


class Param:
    """
    A single parameter declared on a state. Parameters flagged `dynamic` may
    change without the owning state being exited and re-entered.
    """

    def __init__(
        self,
        id: str,
        type: Any = "any",
        dynamic: bool = False,
        value: Any = _UNSET,
    ) -> None:
        """
        :param id: Parameter name, unique within its state.
        :param type: A ParamType or the name of a built-in type.
        :param dynamic: Whether a change can be applied without reloading the state.
        :param value: Default value; a parameter with a default is optional.
        """
        if isinstance(type, str):
            if type not in PARAM_TYPES:
                raise ValidationError(f"Unknown param type '{type}' for param '{id}'")
            type = PARAM_TYPES[type]
        self.id = id
        self.type: ParamType = type
        self.dynamic = dynamic
        self._default = value

    @classmethod
    def from_config(cls, id: str, config: Any) -> "Param":
        """
        Build a Param from a declaration: an existing Param, a dict of
        `type`/`dynamic`/`value` keys, or a bare default value.
        """
        if isinstance(config, Param):
            return config
        if isinstance(config, dict):
            unknown = set(config) - {"type", "dynamic", "value"}
            if unknown:
                raise ValidationError(f"Unknown keys {sorted(unknown)} in declaration of param '{id}'")
            return cls(id, **config)
        return cls(id, value=config)

    @property
    def is_optional(self) -> bool:
        return self._default is not _UNSET

    def value(self, raw: Any = None) -> Any:
        """Return `raw`, or the default value when `raw` is None."""
        if raw is None and self.is_optional:
            return self._default
        return raw

    def validates(self, raw: Any) -> bool:
        value = self.value(raw)
        if value is None:
            return self.is_optional
        return self.type.is_valid(value)

    def __repr__(self) -> str:
        flags = " dynamic" if self.dynamic else ""
        return f"<Param {self.id}:{self.type.name}{flags}>"

    @staticmethod
    def values(params: Iterable["Param"], raw_values: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Pick the values for `params` out of `raw_values`, applying defaults."""
        raw_values = raw_values or {}
        return {param.id: param.value(raw_values.get(param.id)) for param in params}

    @staticmethod
    def changed(
        params: Iterable["Param"], values1: Optional[Dict[str, Any]], values2: Optional[Dict[str, Any]]
    ) -> List["Param"]:
        """Return the params whose values differ between the two mappings."""
        values1, values2 = values1 or {}, values2 or {}
        return [p for p in params if not p.type.equals(values1.get(p.id), values2.get(p.id))]

    @staticmethod
    def equals(
        params: Iterable["Param"], values1: Optional[Dict[str, Any]], values2: Optional[Dict[str, Any]]
    ) -> bool:
        return not Param.changed(params, values1, values2)

    @staticmethod
    def validates_all(params: Iterable["Param"], values: Optional[Dict[str, Any]]) -> bool:
        """True if every param accepts its value from `values`."""
        values = values or {}
        return all(param.validates(values.get(param.id)) for param in params)
