# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest


@pytest.fixture
def registry():
    """
    A small state tree:

        app
        ├── app.home
        ├── app.users            (page: int, default 1, dynamic)
        │   └── app.users.detail (user_id: int, required)
        └── app.admin            (abstract)
            └── app.admin.settings
    """
    from staterouter.core.states import State, StateRegistry

    reg = StateRegistry()
    app = reg.register(State("app"))
    reg.register(State("app.home", app))
    users = reg.register(State("app.users", app, params={"page": {"type": "int", "value": 1, "dynamic": True}}))
    reg.register(State("app.users.detail", users, params={"user_id": {"type": "int"}}))
    admin = reg.register(State("app.admin", app, abstract=True))
    reg.register(State("app.admin.settings", admin))
    return reg


@pytest.fixture
def service(registry):
    """A TransitionService over the sample tree, parked at app.home."""
    from staterouter.transition.transition_service import TransitionService

    svc = TransitionService(registry)
    svc.start_at("app.home")
    return svc


@pytest.fixture
def make_transition(service):
    """Returns a factory building a Transition from the service's current path."""

    def _factory(identifier, params=None, options=None):
        return service.create(service.current_path, service.target(identifier, params, options))

    return _factory


@pytest.fixture
def path_for():
    """Returns a factory building a path of nodes for a state, without a registry."""
    from staterouter.core.node import Node

    def _factory(state, params=None):
        return [Node(s, params) for s in state.path]

    return _factory


@pytest.fixture
def calls():
    """A list hooks and factories append to, for asserting call order."""
    return []
