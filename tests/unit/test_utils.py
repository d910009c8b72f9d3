from __future__ import annotations

import pytest

from scenariokit.core.utils import anonymous_task_id, as_label_list, nanoid

pytestmark = [pytest.mark.unit]


def test_anonymous_task_id_names_collection_and_index():
    assert anonymous_task_id("users", 3) == "users[3]"


def test_anonymous_task_id_steps_around_taken_labels():
    assert anonymous_task_id("users", 0, {"users[0]"}) == "users[0]#1"
    assert anonymous_task_id("users", 0, {"users[0]", "users[0]#1"}) == "users[0]#2"
    assert anonymous_task_id("users", 1, {"users[0]"}) == "users[1]"


def test_as_label_list():
    assert as_label_list(None) == []
    assert as_label_list("w1") == ["w1"]
    assert as_label_list(["w1", None, "w2"]) == ["w1", "w2"]


def test_nanoid_size_and_alphabet():
    assert len(nanoid()) == 21
    assert len(nanoid(8)) == 8
    assert set(nanoid(32, "ab")) <= {"a", "b"}
    with pytest.raises(ValueError):
        nanoid(0)
