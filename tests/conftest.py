"""测试公共夹具"""
from typing import Optional, Sequence

import pytest

from core.cards import CARD_BY_ID, draw_from_deck
from core.state import GameState, Player, TurnPhase


def build_state(
    hands: Sequence[str],
    table: str = "",
    table_owner: Optional[str] = None,
    current: int = 0,
    draw: str = "",
    discard: str = "",
    rest: Optional[str] = "draw",
    player_ids: Optional[Sequence[str]] = None,
) -> GameState:
    """
    用真实的牌构建指定局面

    Args:
        hands: 每个玩家的手牌字符串
        table: 桌面牌 (按共同点数确定)
        table_owner: 桌面组合主人
        current: 当前玩家下标
        draw: 摸牌堆顶部的牌 (最后一张最先被摸到)
        discard: 弃牌堆
        rest: 其余的牌放到 "draw" (摸牌堆底部)、"discard" 或丢弃 (None)
        player_ids: 玩家 id，默认 p0, p1, ...
    """
    pool = dict(CARD_BY_ID)
    ids = list(player_ids or [f"p{i}" for i in range(len(hands))])
    players = tuple(
        Player(pid, pid.upper(), tuple(draw_from_deck(h, pool)))
        for pid, h in zip(ids, hands)
    )

    table_cards = draw_from_deck(table, pool)
    if table_cards:
        common = frozenset.intersection(*(c.candidates for c in table_cards))
        table_cards = [c.with_resolution(max(common)) for c in table_cards]

    discard_cards = draw_from_deck(discard, pool)
    top = draw_from_deck(draw, pool)
    draw_pile = top
    if rest == "draw":
        draw_pile = list(pool.values()) + top
    elif rest == "discard":
        discard_cards = discard_cards + list(pool.values())

    return GameState(
        players=players,
        draw_pile=tuple(draw_pile),
        discard_pile=tuple(discard_cards),
        table=tuple(table_cards),
        table_owner=table_owner if table_cards else None,
        current_player_index=current,
        turn_phase=TurnPhase.WAITING_FOR_PLAY_OR_DRAW,
    )


@pytest.fixture
def make_state():
    return build_state
