"""End-to-end tests for mounted schema views."""

import logging

import pytest

import skema
from skema import (
    Environment,
    ExpressionSyntaxError,
    ScopeStackError,
    batch,
    get_evaluation_context,
    render_html,
)

COUNTER_SCHEMA = {
    "$el": "div",
    "attrs": {"data-x": "$count"},
    "children": [{"if": "$count > 1", "then": "many", "else": "few"}],
}

LIST_SCHEMA = {
    "$el": "ul",
    "children": [{"$el": "li", "for": ["v", "k", "$items"], "children": "$v"}],
}


class TestMountedOutput:
    def test_counter_renders_and_updates(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2})
        assert view.output.props == {"data-x": 2}
        assert view.output.text == "many"

        view.data["count"] = 1
        assert view.output.props == {"data-x": 1}
        assert view.output.text == "few"

    def test_keyed_loop(self, env):
        view = env.mount(LIST_SCHEMA, {"items": {"a": 1, "b": 2}})
        assert [li.text for li in view.output.children] == ["1", "2"]
        assert render_html(view.output) == "<ul><li>1</li><li>2</li></ul>"

    def test_loop_source_growth(self, env):
        view = env.mount(LIST_SCHEMA, {"items": ["a"]})
        view.data["items"].append("b")
        assert [li.text for li in view.output.children] == ["a", "b"]

    def test_loop_source_replacement(self, env):
        view = env.mount(LIST_SCHEMA, {"items": ["a"]})
        view.data["items"] = {"x": "X", "y": "Y"}
        assert [li.text for li in view.output.children] == ["X", "Y"]

    def test_data_defaults_to_empty(self, env):
        view = env.mount({"$el": "p", "children": "$missing"})
        assert view.output.text == ""
        view.data["missing"] = "found"
        assert view.output.text == "found"

    def test_caller_dict_is_the_backing_store(self, env):
        data = {"count": 2}
        view = env.mount(COUNTER_SCHEMA, data)
        view.data["count"] = 5
        assert data["count"] == 5

    def test_render_is_idempotent(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2})
        assert view.render() == view.output
        assert view.render() == view.render()
        assert view.render_count == 1

    def test_render_leaves_no_context_behind(self, env):
        view = env.mount(LIST_SCHEMA, {"items": [1, 2]})
        view.render()
        assert get_evaluation_context() is None


class TestRenderPasses:
    def test_one_pass_per_mutation(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2})
        assert view.render_count == 1
        view.data["count"] = 3
        assert view.render_count == 2

    def test_unchanged_value_does_not_rerender(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2})
        view.data["count"] = 2
        assert view.render_count == 1

    def test_unrelated_key_does_not_rerender(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2, "other": 1})
        view.data["other"] = 2
        assert view.render_count == 1

    def test_batch_renders_once(self, env):
        view = env.mount(
            {"$el": "p", "children": ["$a", "$b"]},
            {"a": 1, "b": 1},
        )
        with batch():
            view.data["a"] = 2
            view.data["b"] = 3
            view.data["a"] = 4
        assert view.render_count == 2
        assert view.output.text == "43"

    def test_batch_over_loop_and_token_renders_once(self, env):
        view = env.mount(
            {
                "$el": "div",
                "children": [
                    {"$el": "li", "for": ["v", "$items"], "children": "$v"},
                    {"$el": "p", "children": "$count"},
                ],
            },
            {"items": {"a": 1}, "count": 0},
        )
        seen = []
        view.subscribe(lambda output: seen.append(output.children[-1].text))
        with batch():
            view.data["items"]["b"] = 2
            view.data["count"] = 5
        assert view.render_count == 2
        assert seen == ["5"]

    def test_update_renders_once(self, env):
        view = env.mount({"$el": "p", "children": ["$a", "$b"]}, {"a": 1, "b": 1})
        view.data.update(a=5, b=6)
        assert view.render_count == 2
        assert view.output.text == "56"


class TestSchemaReplacement:
    def test_recompiles(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2, "name": "Ada"})
        view.schema = {"$el": "p", "children": "$name"}
        assert view.compile_count == 2
        assert view.output.text == "Ada"

    def test_old_tree_stops_reacting(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2, "name": "Ada"})
        view.schema = {"$el": "p", "children": "$name"}
        renders = view.render_count
        view.data["count"] = 10
        assert view.render_count == renders

    def test_fresh_scope_store(self, env):
        view = env.mount({"$el": "p", "let": {"x": 1}}, {})
        old_store = view.store
        view.schema = {"$el": "p"}
        assert view.store is not old_store
        assert len(view.store) == 0

    def test_schema_getter(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 1})
        assert view.schema is COUNTER_SCHEMA


class TestSubscriptions:
    def test_listener_receives_output(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2})
        received = []
        view.subscribe(received.append)
        view.data["count"] = 1
        assert len(received) == 1
        assert received[0].text == "few"

    def test_unsubscribe(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2})
        received = []
        unsubscribe = view.subscribe(received.append)
        unsubscribe()
        unsubscribe()
        view.data["count"] = 1
        assert received == []


class TestUnmount:
    def test_unmount_stops_updates(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2})
        view.unmount()
        view.data["count"] = 1
        assert view.output.text == "many"
        assert view.render_count == 1
        assert not view.mounted

    def test_repr(self, env):
        view = env.mount(COUNTER_SCHEMA, {"count": 2})
        assert "mounted" in repr(view)
        view.unmount()
        assert "unmounted" in repr(view)


class TestEnvironment:
    def test_one_shot_render(self, env):
        output = env.render({"$el": "b", "children": "$who"}, {"who": "you"})
        assert render_html(output) == "<b>you</b>"

    def test_global_components(self):
        def badge(props, children):
            return {"$el": "ignored"}

        env = Environment(components={"Badge": badge})
        view = env.mount({"$cmp": "Badge", "props": {"n": 1}})
        assert view.output.type is badge

    def test_add_component_after_creation(self, env):
        def badge(props, children):
            return None

        env.add_component("Badge", badge)
        assert "Badge" in env.components
        assert env.mount({"$cmp": "Badge"}).output.type is badge

    def test_local_library(self, env):
        def card(props, children):
            return None

        view = env.mount({"$cmp": "Card"}, library={"Card": card})
        assert view.output.type is card

    def test_module_level_mount(self):
        view = skema.mount({"$el": "p", "children": "$x"}, {"x": "hi"})
        assert view.output.text == "hi"
        assert skema.get_default_environment() is skema.get_default_environment()

    def test_compile_and_render_are_logged(self, env, caplog):
        with caplog.at_level(logging.DEBUG, logger="skema.view"):
            env.mount(COUNTER_SCHEMA, {"count": 2})
        assert "Compiled schema" in caplog.text
        assert "Rendered schema view" in caplog.text


class TestDebugChecks:
    def test_unbalanced_frames_detected(self, env):
        view = env.mount({"$el": "p"})

        def leaky_root():
            get_evaluation_context().iteration_scopes.append({"item": 1})

        with pytest.raises(ScopeStackError):
            view._evaluate(leaky_root)

    def test_check_disabled_without_debug(self):
        view = Environment(debug=False).mount({"$el": "p"})

        def leaky_root():
            get_evaluation_context().iteration_scopes.append({"item": 1})

        view._evaluate(leaky_root)


def test_expression_syntax_error_raised_on_mount(env):
    with pytest.raises(ExpressionSyntaxError):
        env.mount({"$el": "p", "children": "$count >"})
