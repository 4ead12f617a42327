from dataclasses import replace

from taskmap.core.mindmap.build import ROOT_ID, tasks_to_mindmap
from taskmap.core.mindmap.visibility import collapse_all_tasks, descendants, expand_children, toggle_children
from taskmap.core.model import Card, Position, Size, Task


def _task(tid, title):
    return Task(
        id=tid,
        title=title,
        description="",
        status="ready",
        priority="medium",
        dependencies=[],
        estimated_time="1 hour",
    )


def _data():
    return tasks_to_mindmap(
        [_task("a", "Setup repo"), _task("b", "Setup CI"), _task("c", "Write tests")],
        "Vis",
    )


def _visible(data):
    return {cid for cid, c in data.cards.items() if c.visible}


def test_toggle_shows_direct_children():
    data = toggle_children(_data(), "branch-0")
    assert data.cards["a"].visible and data.cards["b"].visible
    assert not data.cards["c"].visible


def test_toggle_twice_hides_again():
    data = _data()
    assert _visible(toggle_children(toggle_children(data, "branch-0"), "branch-0")) == _visible(data)


def test_any_visible_child_means_hide_all():
    data = expand_children(_data(), "branch-0")
    data = toggle_children(data, "branch-0")
    # one hidden, one shown -> group is hidden
    data = replace(data, cards={**data.cards, "a": replace(data.cards["a"], visible=True)})
    data = toggle_children(data, "branch-0")
    assert not data.cards["a"].visible and not data.cards["b"].visible


def test_collapsing_root_cascades_to_every_descendant():
    data = expand_children(expand_children(_data(), "branch-0"), "branch-1")
    data = toggle_children(data, ROOT_ID)
    assert _visible(data) == {ROOT_ID}


def test_expanding_root_does_not_reveal_grandchildren():
    data = toggle_children(expand_children(_data(), "branch-0"), ROOT_ID)
    data = toggle_children(data, ROOT_ID)
    assert _visible(data) == {ROOT_ID, "branch-0", "branch-1"}


def test_expanding_keeps_deeper_state():
    # a task card with its own child keeps that child's state when the branch reopens
    data = _data()
    sub = Card(
        id="a-sub",
        type="task",
        title="Sub",
        description="",
        position=Position(0, 0),
        size=Size(180, 100),
        status="ready",
        visible=True,
        children=[],
        parent_id="a",
    )
    cards = dict(data.cards)
    cards["a"] = replace(cards["a"], children=["a-sub"])
    cards["a-sub"] = sub
    data = replace(data, cards=cards)

    data = toggle_children(data, "branch-0")  # show a, b
    assert data.cards["a-sub"].visible
    data = toggle_children(data, "branch-0")  # hide a, b and a-sub
    assert not data.cards["a-sub"].visible
    data = toggle_children(data, "branch-0")
    assert data.cards["a"].visible and not data.cards["a-sub"].visible


def test_unknown_or_leaf_card_is_noop():
    data = _data()
    assert toggle_children(data, "missing") is data
    assert toggle_children(data, "a") is data


def test_collapse_all_tasks_keeps_branches():
    data = collapse_all_tasks(expand_children(_data(), "branch-1"))
    assert _visible(data) == {ROOT_ID, "branch-0", "branch-1"}


def test_descendants_depth_first():
    assert descendants(_data(), ROOT_ID) == ["branch-0", "a", "b", "branch-1", "c"]
