from __future__ import annotations

import pytest
from tests.helpers.models import Group, User

from scenariokit.api.errors import ReferenceNotReady
from scenariokit.graph import build_tree, dependencies, flatten, inject, unflatten
from scenariokit.runtime import ReferenceTable
from scenariokit.storage import describe_model

pytestmark = [pytest.mark.unit]

USERS = build_tree(describe_model(User))
GROUPS = build_tree(describe_model(Group))


@pytest.fixture
def refs():
    table = ReferenceTable()
    for label, rid in {"w1": "id-w1", "w2": "id-w2", "u1": "id-u1", "p1": "id-p1"}.items():
        table.set(label, rid)
    return table


def test_dependencies_collects_single_array_and_sub_document_refs():
    row = {
        "name": "Wendy",
        "favourite": "w1",
        "items": ["w1", "w2"],
        "mostPurchased": [{"item": "w2", "count": 3}, {"item": "w3"}],
    }
    assert dependencies(flatten(row), USERS) == ["w1", "w1", "w2", "w2", "w3"]


def test_dependencies_ignores_absent_and_null_refs():
    assert dependencies(flatten({"name": "Bob", "favourite": None}), USERS) == []


def test_dependencies_nested_mapping_path():
    row = {"name": "G", "preferences": {"defaults": {"items": ["w1"]}}, "projectAwards": [{"project": "p1"}]}
    assert dependencies(flatten(row), GROUPS) == ["w1", "p1"]


def test_dependencies_after_key_adds_explicit_labels():
    flat = flatten({"name": "Bob", "_after": ["u1", "u2"]})
    assert dependencies(flat, USERS, after_key="_after") == ["u1", "u2"]
    assert dependencies(flatten({"name": "Bob", "_after": "u1"}), USERS, after_key="_after") == ["u1"]
    # with another after key configured the field is just data
    assert dependencies(flat, USERS, after_key="$after") == []


def test_inject_replaces_labels_preserving_order(refs):
    flat = flatten({"name": "Wendy", "favourite": "w2", "items": ["w2", "w1"]})
    out = inject(flat, USERS, refs)
    assert out is flat
    assert out == {"name": "Wendy", "favourite": "id-w2", "items": ["id-w2", "id-w1"]}


def test_inject_sub_documents(refs):
    flat = flatten({"name": "Wendy", "mostPurchased": [{"item": "w1", "count": 2}, {"item": "w2"}]})
    row = unflatten(inject(flat, USERS, refs))
    assert row["mostPurchased"] == [{"item": "id-w1", "count": 2}, {"item": "id-w2"}]


def test_inject_nested_mapping_and_award_refs(refs):
    flat = flatten({"name": "G", "preferences": {"defaults": {"items": ["w1"]}}, "projectAwards": [{"project": "p1"}]})
    row = unflatten(inject(flat, GROUPS, refs))
    assert row["preferences"]["defaults"]["items"] == ["id-w1"]
    assert row["projectAwards"] == [{"project": "id-p1"}]


def test_inject_unresolved_label_raises_with_field_path(refs):
    flat = flatten({"name": "Wendy", "mostPurchased": [{"item": "w1"}, {"item": "nope"}]})
    with pytest.raises(ReferenceNotReady) as ei:
        inject(flat, USERS, refs)
    assert ei.value.label == "nope"
    assert ei.value.field == "mostPurchased.1.item"
    assert isinstance(ei.value, AssertionError)
