from laserio_admin.category_models import CategoryForest
from laserio_admin.category_tree import (
    CategoryTreeController,
    ExpansionState,
    LOAD_ERROR_MESSAGE,
    walk_forest,
)
from laserio_admin.errors import ApiError
from laserio_admin.forms import CATEGORY_REQUIRED_MESSAGE
from test_support import DeferredRunner, FakeApiClient, category, deep_tree_payload, require


def _loaded_controller(payload=None):
    client = FakeApiClient()
    client.results["get_category_tree"] = payload if payload is not None else deep_tree_payload()
    controller = CategoryTreeController(client)
    controller.load()
    return client, controller


# Expansion state


def test_toggle_twice_restores_membership() -> None:
    state = ExpansionState({3})
    before = state.snapshot()

    require(state.toggle(5) is True, "Expected first toggle to expand")
    require(state.toggle(5) is False, "Expected second toggle to collapse")
    require(state.snapshot() == before, "Expected initial membership after two toggles")

    require(state.toggle(3) is False, "Expected toggling an expanded id to collapse it")
    state.toggle(3)
    require(state.snapshot() == before, "Expected membership restored for initially expanded id")


# Rendering


def test_walk_visits_every_node_once_in_sibling_order() -> None:
    forest = CategoryForest.from_payload(deep_tree_payload())
    rows = list(walk_forest(forest))

    ids = [row.node.id for row in rows]
    require(ids == [1, 2, 4, 7, 8, 5, 3, 6], f"Unexpected visit order {ids}")
    require(len(ids) == len(set(ids)), "Expected each node exactly once")
    depths = {row.node.id: row.depth for row in rows}
    require(depths[7] == 3 and depths[1] == 0, "Expected depth to follow nesting")


def test_walk_hides_nodes_under_collapsed_ancestors() -> None:
    forest = CategoryForest.from_payload(deep_tree_payload())

    visible = [row.node.id for row in walk_forest(forest, {1}) if row.visible]
    require(visible == [1, 2, 3, 6], f"Unexpected visible {visible!r}")

    visible = [row.node.id for row in walk_forest(forest, {1, 2, 4}) if row.visible]
    require(visible == [1, 2, 4, 7, 8, 5, 3, 6], f"Unexpected visible {visible!r}")

    # An expanded child under a collapsed parent stays hidden.
    visible = [row.node.id for row in walk_forest(forest, {2, 4}) if row.visible]
    require(visible == [1, 6], f"Unexpected visible {visible!r}")


def test_leaves_have_no_expand_affordance() -> None:
    forest = CategoryForest.from_payload(deep_tree_payload())
    rows = {row.node.id: row for row in walk_forest(forest)}
    require(not rows[7].has_children, "Expected leaf without children flag")
    require(rows[4].has_children, "Expected inner node with children flag")


def test_empty_forest_renders_nothing() -> None:
    require(list(walk_forest(CategoryForest())) == [], "Expected no rows for an empty forest")

    client = FakeApiClient()
    client.results["get_category_tree"] = []
    controller = CategoryTreeController(client)
    controller.load()

    require(controller.error is None, "Expected empty tree to load without error")
    require(controller.rows() == [], "Expected no rows")
    require(controller.visible_rows() == [], "Expected no visible rows")


def test_deep_chain_renders_without_recursion_limit() -> None:
    depth = 5000
    payload = [category(depth, f"Уровень {depth}", f"level-{depth}")]
    for node_id in range(depth - 1, 0, -1):
        payload = [category(node_id, f"Уровень {node_id}", f"level-{node_id}", payload)]
    forest = CategoryForest.from_payload(payload)

    rows = list(walk_forest(forest, range(1, depth + 1)))

    require(len(rows) == depth, f"Unexpected row count {len(rows)}")
    require([row.node.id for row in rows] == list(range(1, depth + 1)), "Expected chain order")
    require(rows[-1].depth == depth - 1, f"Unexpected deepest level {rows[-1].depth}")
    require(rows[-1].parent_id == depth - 1, "Expected parent link on the deepest row")
    require(all(row.visible for row in rows), "Expected fully expanded chain visible")
    require(not rows[-1].has_children, "Expected deepest node to be a leaf")
    require(forest.find_by_slug(f"level-{depth}").id == depth, "Expected slug lookup at depth")


def test_controller_toggle_updates_visible_rows() -> None:
    _client, controller = _loaded_controller()
    require([r.node.id for r in controller.visible_rows()] == [1, 6], "Expected roots only")

    require(controller.toggle(1) is True, "Expected expand")
    require([r.node.id for r in controller.visible_rows()] == [1, 2, 3, 6], "Expected children")

    controller.toggle(1)
    require([r.node.id for r in controller.visible_rows()] == [1, 6], "Expected collapsed again")


# Loading


def test_load_failure_keeps_previous_forest_and_sets_error() -> None:
    client, controller = _loaded_controller()
    previous = controller.forest
    require(len(previous) == 8, "Expected initial forest to be loaded")

    client.results.pop("get_category_tree")
    client.errors["get_category_tree"] = ApiError("Сервер недоступен", status=503)
    controller.load()

    require(controller.forest is previous, "Expected previous forest to stay displayed")
    require(
        controller.error == "Сервер недоступен",
        "Expected remote message as error",
    )
    require(not controller.loading, "Expected loading flag cleared")


def test_load_failure_without_message_uses_fallback() -> None:
    client = FakeApiClient()
    client.errors["get_category_tree"] = RuntimeError("boom")
    controller = CategoryTreeController(client)

    controller.load()

    require(controller.error == LOAD_ERROR_MESSAGE, f"Unexpected error {controller.error!r}")
    require(len(controller.forest) == 0, "Expected forest to stay empty")


def test_dismiss_error_clears_flag() -> None:
    client = FakeApiClient()
    client.errors["get_category_tree"] = ApiError("Ошибка")
    controller = CategoryTreeController(client)
    controller.load()

    controller.dismiss_error()

    require(controller.error is None, f"Unexpected error {controller.error!r}")


def test_duplicate_load_while_in_flight_is_suppressed() -> None:
    client = FakeApiClient()
    client.results["get_category_tree"] = deep_tree_payload()
    runner = DeferredRunner()
    controller = CategoryTreeController(client, runner)

    require(controller.load() is True, "Expected first load to start")
    require(controller.load() is False, "Expected second load to be suppressed")
    require(len(runner.pending) == 1, "Expected a single queued request")

    runner.run_pending()
    require(len(controller.forest) == 8, "Expected forest after completion")
    require(controller.load() is True, "Expected load allowed after completion")


def test_forced_reload_discards_stale_response() -> None:
    client = FakeApiClient()
    runner = DeferredRunner()
    controller = CategoryTreeController(client, runner)

    client.results["get_category_tree"] = [category(1, "Old", "old")]
    controller.load()
    old_request = runner.pending.popleft()

    client.results["get_category_tree"] = deep_tree_payload()
    controller.reload()
    runner.run_pending()
    require(len(controller.forest) == 8, "Expected the newest forest")

    client.results["get_category_tree"] = [category(1, "Old", "old")]
    DeferredRunner._run(old_request)
    require(len(controller.forest) == 8, "Expected stale response to be ignored")
    require(controller.forest.find_by_slug("old") is None, "Expected old data discarded")


def test_load_notifies_observers() -> None:
    client = FakeApiClient()
    client.results["get_category_tree"] = deep_tree_payload()
    controller = CategoryTreeController(client)
    seen = []
    controller.state.subscribe("loading", lambda value: seen.append(("loading", value)))
    controller.state.subscribe("forest", lambda forest: seen.append(("forest", len(forest))))

    controller.load()

    require(
        seen == [("loading", True), ("loading", False), ("forest", 8)],
        f"Unexpected seen {seen!r}",
    )


# Selection


def test_select_notifies_slug() -> None:
    _client, controller = _loaded_controller()
    selected = []
    controller.on_select(selected.append)

    controller.select(4)
    controller.select(999)

    require(selected == ["co2"], f"Unexpected selected {selected!r}")


# Create / edit


def test_save_with_empty_name_fails_locally_without_network() -> None:
    client, controller = _loaded_controller()
    calls_before = len(client.calls)
    controller.begin_create(None)
    controller.update_form(name="", slug="some-slug")

    require(controller.save() is False, "Expected save to be refused")
    require(controller.editor.error == CATEGORY_REQUIRED_MESSAGE, "Expected validation message")
    require(len(client.calls) == calls_before, "Expected zero network calls")


def test_create_subcategory_sends_parent_and_reloads() -> None:
    client, controller = _loaded_controller()
    client.results["create_category"] = {"id": 42}
    controller.begin_create(4)
    controller.update_form(name="Гравёры по металлу")

    require(controller.editor.form.slug == "gravery-po-metallu", "Expected auto slug")
    require(controller.save() is True, "Expected save to be submitted")

    (payload,), = client.calls_to("create_category")
    require(payload["parent_id"] == 4, "Expected parent id in create payload")
    require(payload["name"] == "Гравёры по металлу", "Expected name in payload")
    require("description" not in payload, "Expected empty description omitted")
    require(controller.editor is None, "Expected editor closed after success")
    require(len(client.calls_to("get_category_tree")) == 2, "Expected forced tree reload")


def test_create_root_category_omits_parent() -> None:
    client, controller = _loaded_controller()
    controller.begin_create(None)
    controller.update_form(name="Аксессуары", slug="aksessuary")
    controller.save()

    (payload,), = client.calls_to("create_category")
    require("parent_id" not in payload, "Expected root create without parent_id")


def test_edit_never_sends_parent_id() -> None:
    client, controller = _loaded_controller()
    editor = controller.begin_edit(7)
    require(editor.parent_id == 4, "Expected parent resolved for display")
    require(editor.form.slug == "nastolnye", "Expected form prefilled from node")

    controller.update_form(name="Настольные станки")
    require(controller.editor.form.slug == "nastolnye", "Expected slug untouched in edit mode")
    controller.save()

    (node_id, payload), = client.calls_to("update_category")
    require(node_id == 7, "Expected update addressed by node id")
    require("parent_id" not in payload, "Edit must not send parent_id")
    require(payload["name"] == "Настольные станки", "Expected new name sent")


def test_save_failure_keeps_editor_with_remote_message() -> None:
    client, controller = _loaded_controller()
    client.errors["create_category"] = ApiError("Slug уже занят", status=409)
    controller.begin_create(None)
    controller.update_form(name="Станки", slug="stanki")

    controller.save()

    require(controller.editor is not None, "Expected editor to stay open")
    require(controller.editor.error == "Slug уже занят", "Expected remote message")
    require(not controller.editor.saving, "Expected saving flag cleared")
    require(len(client.calls_to("get_category_tree")) == 1, "Expected no reload on failure")


def test_second_save_while_pending_is_suppressed() -> None:
    client = FakeApiClient()
    client.results["get_category_tree"] = deep_tree_payload()
    runner = DeferredRunner()
    controller = CategoryTreeController(client, runner)
    controller.begin_create(None)
    controller.update_form(name="Оптика", slug="optika")

    require(controller.save() is True, "Expected first save to be submitted")
    require(controller.save() is False, "Expected second save to be suppressed")
    require(controller.cancel() is False, "Expected cancel refused while saving")
    runner.run_pending()

    require(len(client.calls_to("create_category")) == 1, "Expected exactly one create call")


def test_hand_typed_slug_is_not_overwritten() -> None:
    _client, controller = _loaded_controller()
    controller.begin_create(None)
    controller.update_form(name="Линзы")
    controller.update_form(slug="custom-lenses")
    controller.update_form(name="Линзы ZnSe")

    require(
        controller.editor.form.slug == "custom-lenses",
        f"Unexpected slug {controller.editor.form.slug!r}",
    )


def test_apply_prefill_merges_known_fields() -> None:
    _client, controller = _loaded_controller()
    controller.begin_create(None)

    ok = controller.apply_prefill('{"name": "Зеркала", "slug": "zerkala", "sort_order": "3", "foo": 1}')

    require(ok, "Expected prefill to succeed")
    form = controller.editor.form
    require(
        (form.name, form.slug, form.sort_order) == ("Зеркала", "zerkala", 3),
        "Expected fields merged",
    )


def test_apply_prefill_error_is_reported_inline() -> None:
    _client, controller = _loaded_controller()
    controller.begin_create(None)
    controller.update_form(name="Ручной ввод")

    ok = controller.apply_prefill("[1, 2]")

    require(not ok, "Expected prefill rejection")
    require(controller.editor.error, "Expected inline error message")
    require(controller.editor.form.name == "Ручной ввод", "Expected manual input kept")


def test_cancel_closes_editor() -> None:
    _client, controller = _loaded_controller()
    controller.begin_create(None)
    require(controller.cancel() is True, "Expected cancel to close the editor")
    require(controller.editor is None, f"Unexpected editor {controller.editor!r}")


def test_set_expanded_targets_the_given_node_not_the_selection() -> None:
    _client, controller = _loaded_controller()
    controller.select(6)

    require(controller.set_expanded(1, True) is True, "Expected node 1 to open")
    require(1 in controller.expansion, "Expected node 1 expanded")
    require(6 not in controller.expansion, "Expected selected node untouched")
    require(
        [r.node.id for r in controller.visible_rows()] == [1, 2, 3, 6],
        "Expected children of node 1 shown",
    )


def test_set_expanded_is_idempotent() -> None:
    _client, controller = _loaded_controller()
    seen = []
    controller.state.subscribe("expanded", seen.append)

    require(controller.set_expanded(2, True) is True, "Expected first open to change state")
    require(controller.set_expanded(2, True) is False, "Expected repeated open to be a no-op")
    require(controller.set_expanded(2, False) is True, "Expected close to change state")
    require(controller.set_expanded(2, False) is False, "Expected repeated close to be a no-op")
    require(seen == [{2}, set()], f"Unexpected notifications {seen}")
