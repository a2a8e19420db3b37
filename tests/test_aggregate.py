"""Tests for completion counts, percentages and status strings."""

import pytest

from tasktree.aggregate import (
    add_subtask,
    completion_percent,
    format_progress,
    get_completion_string,
    get_counts,
    is_malformed,
    malformed_nodes,
)
from tasktree.errors import ParentNotFound
from tasktree.models import TaskCounts, TaskForest, TaskNode


def _leaf(done=False, text=""):
    return TaskNode(completed=done, text=text)


def test_empty_forest():
    assert get_counts([]) == TaskCounts(0, 0)
    assert get_completion_string(TaskForest()) == "No tasks"


def test_parent_mark_is_not_counted():
    parent = TaskNode(completed=True, children=[_leaf(False), _leaf(True)])
    assert get_counts([parent]) == TaskCounts(total=2, completed=1)


def test_percent_rounds_half_up():
    assert completion_percent(TaskCounts(0, 0)) == 0
    assert completion_percent(TaskCounts(2, 1)) == 50
    assert completion_percent(TaskCounts(3, 1)) == 33
    assert completion_percent(TaskCounts(3, 2)) == 67
    assert completion_percent(TaskCounts(8, 1)) == 13
    assert completion_percent(TaskCounts(200, 1)) == 1
    assert completion_percent(TaskCounts(4, 4)) == 100


def test_format_progress_template():
    counts = TaskCounts(total=4, completed=1)
    assert format_progress(counts) == "Complete 25% (1/4)"
    assert format_progress(counts, "{completed} of {total} done, {percentage}%") == "1 of 4 done, 25%"


def test_counts_add():
    assert TaskCounts(2, 1) + TaskCounts(3, 3) == TaskCounts(5, 4)
    assert TaskCounts(2, 2).is_complete
    assert not TaskCounts(0, 0).is_complete


class TestMalformed:
    def test_consistent_tree(self):
        roots = [
            TaskNode(completed=True, children=[_leaf(True), _leaf(True)]),
            TaskNode(completed=False, children=[_leaf(True), _leaf(False)]),
        ]
        assert not is_malformed(roots)
        assert get_completion_string(roots) == "Complete 75% (3/4)"

    def test_checked_parent_with_open_child(self):
        bad = TaskNode(completed=True, children=[_leaf(False)])
        roots = [bad, _leaf(True)]
        assert malformed_nodes(roots) == [bad]
        assert get_completion_string(roots) == "Complete 50% (1/2) ❗"

    def test_unchecked_parent_with_done_children(self):
        roots = [TaskNode(completed=False, children=[_leaf(True)])]
        assert get_completion_string(roots) == "Complete 100% (1/1) ❗"

    def test_nested_malformed_parent(self):
        inner = TaskNode(completed=True, children=[_leaf(False)])
        outer = TaskNode(completed=False, children=[inner, _leaf(True)])
        assert malformed_nodes([outer]) == [inner]

    def test_cyclic_forest_is_flagged(self):
        forest = TaskForest(roots=[_leaf(False)], cyclic=True)
        assert is_malformed(forest)
        assert get_completion_string(forest) == "Complete 0% (0/1) ❗"

    def test_cyclic_forest_without_tasks(self):
        forest = TaskForest(roots=[], cyclic=True)
        assert get_completion_string(forest) == "No tasks ❗"


class TestAddSubtask:
    def test_adds_under_nested_parent(self):
        child = _leaf(False, "child")
        forest = TaskForest(roots=[TaskNode(children=[child]), _leaf(True)])

        add_subtask(forest, child, _leaf(True, "new"))

        assert [n.text for n in child.children] == ["new"]
        assert get_counts(forest) == TaskCounts(total=2, completed=2)

    def test_parent_outside_forest(self):
        forest = TaskForest(roots=[_leaf(False, "a")])
        lookalike = _leaf(False, "a")
        with pytest.raises(ParentNotFound, match="Parent task not found"):
            add_subtask(forest, lookalike, _leaf())

    def test_accepts_plain_list_of_roots(self):
        root = _leaf()
        roots = [root]
        add_subtask(roots, root, _leaf(True))
        assert get_counts(roots) == TaskCounts(total=1, completed=1)

