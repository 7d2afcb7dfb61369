"""
隐藏世界采样 (determinization)

根据已知位置的牌和对手信念，生成一个牌守恒的完整世界:
1. 已知的牌: 弃牌堆、桌面、收牌、机器人自己的手牌和摸到的牌、可见的手牌
2. 整副牌减去已知的牌为未见牌池，均匀洗乱
3. 每个对手先按信念中每个点数张数范围的中点贪心取牌，再随机补足手牌数，最后打乱顺序
4. 剩余的牌成为摸牌堆
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set
import random

from core.cards import Card, FULL_DECK, VALUES
from core.state import GameState
from core.errors import InconsistencyError

from .belief import BeliefTracker


@dataclass
class HiddenWorld:
    """
    一个确定化的世界

    Attributes:
        hands: 玩家 id -> 手牌 (包括机器人自己)
        draw_pile: 摸牌堆
        discard_pile: 弃牌堆
        table: 桌面上的牌
        held: 尚未处理的牌 (机器人摸到的牌、收牌)
    """
    hands: Dict[str, List[Card]]
    draw_pile: List[Card]
    discard_pile: List[Card]
    table: List[Card]
    held: List[Card] = field(default_factory=list)

    def all_cards(self) -> List[Card]:
        cards: List[Card] = []
        for hand in self.hands.values():
            cards.extend(hand)
        cards.extend(self.draw_pile)
        cards.extend(self.discard_pile)
        cards.extend(self.table)
        cards.extend(self.held)
        return cards

    def check_conservation(self) -> None:
        ids = sorted(card.id for card in self.all_cards())
        if ids != sorted(card.id for card in FULL_DECK):
            raise InconsistencyError("Sampled world does not conserve cards")


def _held_cards(state: GameState, bot_id: str) -> List[Card]:
    held: List[Card] = []
    if state.drawn_card is not None and state.drawn_card_owner == bot_id:
        held.append(state.drawn_card)
    if state.pending_capture is not None:
        held.extend(state.pending_capture.cards)
    return held


def known_card_ids(state: GameState, bot_id: str, visible_player_ids: Iterable[str] = ()) -> Set[int]:
    """机器人知道位置的牌"""
    known: Set[int] = set()
    known.update(c.id for c in state.discard_pile)
    known.update(c.id for c in state.table)
    known.update(c.id for c in _held_cards(state, bot_id))
    for pid in set(visible_player_ids) | {bot_id}:
        known.update(c.id for c in state.get_hand(pid))
    return known


def _take_matching(pool: List[Card], value: int) -> Optional[Card]:
    for i, card in enumerate(pool):
        if card.can_resolve_to(value):
            return pool.pop(i)
    return None


def sample_hidden_world(
    state: GameState,
    bot_id: str,
    tracker: Optional[BeliefTracker] = None,
    visible_player_ids: Sequence[str] = (),
) -> HiddenWorld:
    """
    采样一个隐藏世界

    Args:
        state: 真实状态
        bot_id: 机器人 id
        tracker: 对手信念 (None 表示均匀采样)
        visible_player_ids: 手牌可见的其他玩家

    Returns:
        HiddenWorld (牌守恒)
    """
    visible = set(visible_player_ids) | {bot_id}
    known = known_card_ids(state, bot_id, visible)

    pool = [card for card in FULL_DECK if card.id not in known]
    random.shuffle(pool)

    hands: Dict[str, List[Card]] = {}
    for p in state.players:
        if p.id in visible:
            hands[p.id] = list(p.hand)
            continue

        budget = len(p.hand)
        sampled: List[Card] = []
        belief = tracker.get(p.id) if tracker is not None else None

        if belief is not None:
            for v in VALUES:
                target = belief.possible_counts[v].midpoint
                for _ in range(target):
                    if len(sampled) >= budget:
                        break
                    card = _take_matching(pool, v)
                    if card is None:
                        break
                    sampled.append(card)

        while len(sampled) < budget and pool:
            sampled.append(pool.pop())

        if len(sampled) < budget:
            raise InconsistencyError(f"Not enough unseen cards to fill the hand of {p.id}")

        random.shuffle(sampled)
        hands[p.id] = sampled

    return HiddenWorld(
        hands=hands,
        draw_pile=pool,
        discard_pile=list(state.discard_pile),
        table=list(state.table),
        held=_held_cards(state, bot_id),
    )
