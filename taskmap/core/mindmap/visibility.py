from __future__ import annotations

from dataclasses import replace

from taskmap.core.model import Card, MindMapData


def toggle_children(data: MindMapData, card_id: str) -> MindMapData:
    """Group toggle of a card's direct children.

    New visibility is `not any(child visible)`. Hiding cascades to every
    descendant; showing only touches direct children, so deeper cards keep
    whatever state they were left in. Unknown ids are a no-op.
    """
    parent = data.cards.get(card_id)
    if parent is None or not parent.children:
        return data

    show = not any(data.cards[c].visible for c in parent.children if c in data.cards)
    if show:
        return _with_visibility(data, {c: True for c in parent.children})
    return _with_visibility(data, {c: False for c in descendants(data, card_id)})


def expand_children(data: MindMapData, card_id: str) -> MindMapData:
    parent = data.cards.get(card_id)
    if parent is None:
        return data
    return _with_visibility(data, {c: True for c in parent.children})


def collapse_all_tasks(data: MindMapData) -> MindMapData:
    return _with_visibility(data, {cid: False for cid, card in data.cards.items() if card.type == "task"})


def descendants(data: MindMapData, card_id: str) -> list[str]:
    out: list[str] = []
    seen: set[str] = {card_id}
    stack = list(reversed(data.cards[card_id].children)) if card_id in data.cards else []
    while stack:
        cur = stack.pop()
        if cur in seen or cur not in data.cards:
            continue
        seen.add(cur)
        out.append(cur)
        stack.extend(reversed(data.cards[cur].children))
    return out


def _with_visibility(data: MindMapData, changes: dict[str, bool]) -> MindMapData:
    cards: dict[str, Card] = {}
    changed = False
    for cid, card in data.cards.items():
        # Root is always shown.
        visible = True if card.type == "root" else changes.get(cid, card.visible)
        if visible != card.visible:
            card = replace(card, visible=visible)
            changed = True
        cards[cid] = card
    return replace(data, cards=cards) if changed else data
