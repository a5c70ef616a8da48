"""staterouter: hierarchical state transition engine

Moves an application from one path of nested states to another, running
lifecycle hooks and resolving named, asynchronously computed dependencies
along the way.

Responsibilities:
    - Computing which states a transition exits, retains and enters
    - Running hooks in lifecycle order and mapping their results to control signals
    - Resolving dependencies per state according to their resolve policy
    - Settling each transition's outcome exactly once

Cross-cutting Concerns:
    Error Handling:
        - RouterError hierarchy for construction and lookup errors
        - TransitionRejection for every non-success outcome of a transition

    Logging:
        - Module-level loggers under the "staterouter" namespace
        - Debug level only; the library never configures handlers
"""

from staterouter.core.errors import (
    InjectionError,
    RouterError,
    StateNotFoundError,
    TransitionError,
    ValidationError,
)
from staterouter.core.node import Node
from staterouter.core.params import Param, ParamType
from staterouter.core.path_factory import PathFactory, TreeChanges
from staterouter.core.states import Glob, State, StateRegistry, TargetState
from staterouter.resolve.policy import ResolvePolicy
from staterouter.resolve.resolvable import Resolvable
from staterouter.resolve.resolve_context import ResolveContext
from staterouter.runtime.injector import inject
from staterouter.transition.hook_registry import HookRegistry, HookType
from staterouter.transition.rejection import REJECT, Rejection, RejectType, TransitionRejection
from staterouter.transition.transition import Transition
from staterouter.transition.transition_hook import ExecutionMode, HookOptions, TransitionHook
from staterouter.transition.transition_service import TransitionService

__version__ = "0.1.0"

__all__ = [
    "ExecutionMode",
    "Glob",
    "HookOptions",
    "HookRegistry",
    "HookType",
    "InjectionError",
    "Node",
    "Param",
    "ParamType",
    "PathFactory",
    "REJECT",
    "RejectType",
    "Rejection",
    "Resolvable",
    "ResolveContext",
    "ResolvePolicy",
    "RouterError",
    "State",
    "StateNotFoundError",
    "StateRegistry",
    "TargetState",
    "Transition",
    "TransitionError",
    "TransitionHook",
    "TransitionRejection",
    "TransitionService",
    "TreeChanges",
    "ValidationError",
    "inject",
]
