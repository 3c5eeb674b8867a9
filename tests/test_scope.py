"""Tests for scope identifiers, the scope store and value resolution."""

from types import SimpleNamespace

import pytest

from skema import MISSING, UNDEFINED, ScopeId, ScopeStore, reactive, resolve
from skema.scope import find_value, split_token


class TestScopeId:
    """Scope ids are unique identity tokens."""

    def test_ids_never_collide(self):
        ids = {ScopeId() for _ in range(1000)}
        assert len(ids) == 1000

    def test_same_label_different_ids(self):
        a, b = ScopeId("node"), ScopeId("node")
        assert a != b
        assert len({a, b}) == 2

    def test_repr_includes_label(self):
        assert "root" in repr(ScopeId("root"))


class TestFindValue:
    """Path lookup across an ordered candidate chain."""

    def test_simple_key(self):
        assert find_value([{"a": 1}], ["a"]) == 1

    def test_dotted_path(self):
        data = {"user": {"address": {"city": "Oslo"}}}
        assert find_value([data], split_token("user.address.city")) == "Oslo"

    def test_first_candidate_wins(self):
        assert find_value([{"x": "near"}, {"x": "far"}], ["x"]) == "near"

    def test_falls_back_to_later_candidates(self):
        assert find_value([{"y": 1}, {"x": 2}], ["x"]) == 2

    def test_absent_is_missing(self):
        assert find_value([{"a": 1}], ["b"]) is MISSING

    def test_none_value_counts_as_found(self):
        assert find_value([{"x": None}, {"x": "later"}], ["x"]) is None

    def test_undefined_value_counts_as_found(self):
        assert find_value([{"x": UNDEFINED}, {"x": "later"}], ["x"]) is UNDEFINED

    def test_falsy_values_are_found(self):
        for falsy in (0, "", False, [], {}):
            assert find_value([{"x": falsy}, {"x": "later"}], ["x"]) == falsy

    def test_partial_path_falls_through(self):
        chain = [{"user": {"id": 1}}, {"user": {"name": "Ada"}}]
        assert find_value(chain, ["user", "name"]) == "Ada"

    def test_intermediate_scalar_does_not_match(self):
        assert find_value([{"user": "Ada"}], ["user", "upper"]) is MISSING

    def test_sequence_index(self):
        assert find_value([{"items": ["a", "b"]}], split_token("items.1")) == "b"

    def test_sequence_bad_index(self):
        assert find_value([{"items": ["a"]}], split_token("items.5")) is MISSING
        assert find_value([{"items": ["a"]}], split_token("items.x")) is MISSING

    def test_object_attribute(self):
        data = {"user": SimpleNamespace(name="Ada")}
        assert find_value([data], ["user", "name"]) == "Ada"

    def test_private_attributes_are_hidden(self):
        data = {"user": SimpleNamespace(_secret=1)}
        assert find_value([data], ["user", "_secret"]) is MISSING

    def test_empty_path(self):
        assert find_value([{"": 1}], []) is MISSING

    def test_reactive_candidates(self):
        assert find_value([reactive({"a": {"b": 3}})], ["a", "b"]) == 3


class TestScopeStore:
    """let bindings land in the innermost scope only."""

    def test_bind_creates_entry(self):
        store = ScopeStore()
        scope = ScopeId()
        store.bind((scope,), "x", 1)
        assert dict(store.get(scope)) == {"x": 1}

    def test_bind_writes_innermost_only(self):
        store = ScopeStore()
        parent, child = ScopeId(), ScopeId()
        store.bind((parent, child), "x", 1)
        assert store.get(parent) is None
        assert store.get(child)["x"] == 1

    def test_bind_merges(self):
        store = ScopeStore()
        scope = ScopeId()
        store.bind((scope,), {"a": 1, "b": 2})
        store.bind((scope,), {"b": 3, "c": 4})
        assert dict(store.get(scope)) == {"a": 1, "b": 3, "c": 4}

    def test_bind_does_not_mutate_input(self):
        store = ScopeStore()
        scope = ScopeId()
        bindings = {"a": 1}
        store.bind((scope,), bindings)
        store.bind((scope,), "b", 2)
        assert bindings == {"a": 1}

    def test_bind_requires_scope(self):
        with pytest.raises(ValueError):
            ScopeStore().bind((), "x", 1)

    def test_chain_skips_unbound_scopes_and_ends_with_data(self):
        store = ScopeStore()
        a, b, c = ScopeId(), ScopeId(), ScopeId()
        store.bind((a,), "x", 1)
        store.bind((a, b, c), "y", 2)
        data = {"z": 3}
        chain = store.chain((a, b, c), data)
        assert len(chain) == 3
        assert chain[-1] is data

    def test_ancestor_binding_visible_to_descendant(self):
        store = ScopeStore()
        parent, child = ScopeId(), ScopeId()
        store.bind((parent,), "x", 1)
        assert find_value(store.chain((parent, child), {}), ["x"]) == 1

    def test_nearest_binding_wins(self):
        store = ScopeStore()
        parent, child = ScopeId(), ScopeId()
        store.bind((parent,), "x", "outer")
        store.bind((parent, child), "x", "inner")
        chain = store.chain((parent, child), {"x": "data"})
        assert find_value(chain, ["x"]) == "inner"
        assert find_value(store.chain((parent,), {"x": "data"}), ["x"]) == "outer"

    def test_sibling_binding_invisible(self):
        store = ScopeStore()
        root, left, right = ScopeId(), ScopeId(), ScopeId()
        store.bind((root, left), "x", 1)
        assert find_value(store.chain((root, right), {}), ["x"]) is MISSING


class TestResolve:
    """resolve() returns a ref kept current by an effect."""

    def test_resolves_data(self):
        data = reactive({"count": 2})
        ref = resolve(data, ScopeStore(), (ScopeId(),), "count")
        assert ref.value == 2

    def test_tracks_data_mutation(self):
        data = reactive({"count": 2})
        ref = resolve(data, ScopeStore(), (ScopeId(),), "count")
        data["count"] = 5
        assert ref.value == 5

    def test_tracks_nested_replacement(self):
        data = reactive({"user": {"name": "Ada"}})
        ref = resolve(data, ScopeStore(), (ScopeId(),), "user.name")
        data["user"] = {"name": "Grace"}
        assert ref.value == "Grace"

    def test_scope_binding_shadows_data(self):
        store = ScopeStore()
        scope = ScopeId()
        store.bind((scope,), "x", "local")
        ref = resolve(reactive({"x": "global"}), store, (scope,), "x")
        assert ref.value == "local"

    def test_late_binding_is_picked_up(self):
        store = ScopeStore()
        scope = ScopeId()
        ref = resolve(reactive({}), store, (scope,), "x")
        assert ref.value is None
        store.bind((scope,), "x", 7)
        assert ref.value == 7

    def test_missing_keeps_previous_value(self):
        data = reactive({"count": 3})
        ref = resolve(data, ScopeStore(), (ScopeId(),), "count")
        del data["count"]
        assert ref.value == 3

    def test_unknown_token_is_none(self):
        ref = resolve(reactive({}), ScopeStore(), (ScopeId(),), "nope")
        assert ref.value is None


def test_store_clear_drops_every_binding():
    store = ScopeStore()
    a, b = ScopeId(), ScopeId()
    store.bind((a,), "x", 1)
    store.bind((b,), "y", 2)
    assert len(store) == 2
    store.clear()
    assert len(store) == 0
    assert a not in store
