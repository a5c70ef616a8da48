# staterouter/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details


class RouterError(Exception):
    """Root of every error staterouter raises; catch this to handle them all."""


class StateNotFoundError(RouterError):
    """A state name was looked up in a registry, or a state in a path, and was missing."""


class TransitionError(RouterError):
    """
    A transition could not be built or followed through: the target is
    unknown or invalid, or a chain of redirects never came to rest.
    """


class ValidationError(RouterError):
    """A state declaration is malformed, such as a child registered before its parent or a bad param type."""


class InjectionError(RouterError):
    """A hook or resolve factory asked for a value by name that no resolvable or local supplies."""
