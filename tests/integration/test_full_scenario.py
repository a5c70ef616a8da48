# tests/integration/test_full_scenario.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio

import pytest

from staterouter import (
    RejectType,
    ResolvePolicy,
    State,
    StateRegistry,
    TransitionRejection,
    TransitionService,
    inject,
)


@pytest.fixture
def shop(calls):
    """
    A storefront tree with resolves at several policies:

        shop             session (EAGER)
        ├── shop.catalog  products (LAZY), page param (dynamic)
        │   └── shop.catalog.product  product (LAZY), reviews (JIT)
        └── shop.cart     cart (LAZY)
    """

    async def load_session():
        calls.append("resolve session")
        await asyncio.sleep(0)
        return {"user": "alice"}

    def load_products(session, state_params):
        calls.append("resolve products")
        return [f"{session['user']}-item-{state_params['page']}"]

    def load_product(products, state_params):
        calls.append("resolve product")
        return {"sku": state_params["sku"], "listed": state_params["sku"] in products}

    def load_reviews(product):
        calls.append("resolve reviews")
        return [f"review of {product['sku']}"]

    registry = StateRegistry()
    shop = registry.register(State("shop", resolve={"session": load_session}, resolve_policy="EAGER"))
    catalog = registry.register(
        State(
            "shop.catalog",
            shop,
            params={"page": {"type": "int", "value": 1, "dynamic": True}},
            resolve={"products": load_products},
        )
    )
    registry.register(
        State(
            "shop.catalog.product",
            catalog,
            params={"sku": {"type": "string"}},
            resolve={"product": load_product, "reviews": load_reviews},
            resolve_policy={"reviews": ResolvePolicy.JIT},
            views=["product-page"],
        )
    )
    registry.register(State("shop.cart", shop, resolve={"cart": lambda session: {"owner": session["user"]}}))

    service = TransitionService(registry, view_config_factory=lambda node, view: f"{node.state.name}:{view}")
    return service


def record(calls, label):
    def hook(state, transition):
        calls.append(f"{label} {state.name}")

    return hook


@pytest.mark.asyncio
async def test_lifecycle_order(shop, calls):
    shop.on("start", {}, lambda transition: calls.append(f"start {transition.to().name}"))
    shop.on("exit", {}, record(calls, "exit"))
    shop.on("retain", {}, record(calls, "retain"))
    shop.on("enter", {}, record(calls, "enter"))
    shop.on("finish", {}, lambda: calls.append("finish"))
    shop.on("success", {}, lambda: calls.append("success"))

    await shop.transition_to("shop.catalog.product", {"sku": "alice-item-1"})
    assert calls == [
        "resolve session",
        "start shop.catalog.product",
        "enter shop",
        "resolve products",
        "enter shop.catalog",
        "resolve product",
        "enter shop.catalog.product",
        "finish",
        "success",
    ]

    calls.clear()
    transition = await shop.transition_to("shop.cart")
    assert calls == [
        "start shop.cart",
        "exit shop.catalog.product",
        "exit shop.catalog",
        "retain shop",
        "enter shop.cart",
        "finish",
        "success",
    ]
    assert transition.resolves()["cart"] == {"owner": "alice"}


@pytest.mark.asyncio
async def test_policies_across_a_transition(shop, calls):
    transition = await shop.transition_to("shop.catalog.product", {"sku": "alice-item-1"})
    resolves = transition.resolves()
    assert resolves["session"] == {"user": "alice"}
    assert resolves["products"] == ["alice-item-1"]
    assert resolves["product"] == {"sku": "alice-item-1", "listed": True}
    assert "reviews" not in resolves
    assert "resolve reviews" not in calls


@pytest.mark.asyncio
async def test_jit_resolve_injected_on_demand(shop, calls):
    received = []

    @inject("reviews", "transition")
    def show_reviews(reviews, transition):
        received.append((reviews, transition.to().name))

    shop.on("finish", {"to": "shop.catalog.product"}, show_reviews)
    transition = await shop.transition_to("shop.catalog.product", {"sku": "x"})
    assert received == [(["review of x"], "shop.catalog.product")]
    assert transition.resolves()["reviews"] == ["review of x"]
    assert calls.count("resolve reviews") == 1


@pytest.mark.asyncio
async def test_dynamic_param_change_keeps_states(shop, calls):
    shop.on("enter", {}, record(calls, "enter"))
    shop.on("exit", {}, record(calls, "exit"))
    await shop.transition_to("shop.catalog", {"page": 1})
    calls.clear()

    planned = shop.create(shop.current_path, shop.target("shop.catalog", {"page": 2}))
    assert planned.dynamic()
    assert not planned.ignored()

    transition = await shop.transition_to("shop.catalog", {"page": 2})
    assert transition.success
    assert calls == []
    assert shop.current_path[-1].param_values == {"page": 2}


@pytest.mark.asyncio
async def test_reload_reenters_states(shop, calls):
    shop.on("enter", {}, record(calls, "enter"))
    await shop.transition_to("shop.catalog", {"page": 1})
    calls.clear()

    await shop.transition_to("shop.catalog", {"page": 1}, {"reload": "shop.catalog"})
    assert calls == ["resolve products", "enter shop.catalog"]


@pytest.mark.asyncio
async def test_views_configured_for_destination(shop):
    transition = await shop.transition_to("shop.catalog.product", {"sku": "x"})
    assert transition.views() == ["shop.catalog.product:product-page"]


@pytest.mark.asyncio
async def test_hook_adds_resolves_mid_transition(shop):
    def add_discount(transition):
        transition.add_resolves({"discount": lambda session: 0.1 if session["user"] == "alice" else 0}, "shop.cart")

    seen = []
    shop.on("start", {"to": "shop.cart"}, add_discount)
    shop.on("finish", {"to": "shop.cart"}, lambda discount: seen.append(discount))
    await shop.transition_to("shop.cart")
    assert seen == [0.1]


@pytest.mark.asyncio
async def test_async_hook_result_aborts(shop, calls):
    async def check_stock(product):
        await asyncio.sleep(0)
        return product["listed"]

    shop.on("enter", {"entering": "shop.catalog.product"}, check_stock)
    shop.on("error", {}, lambda error: calls.append(error.type))
    with pytest.raises(TransitionRejection) as exc:
        await shop.transition_to("shop.catalog.product", {"sku": "unlisted"})
    assert exc.value.type is RejectType.ABORTED
    assert calls[-1] is RejectType.ABORTED
    assert shop.current_path == []

