"""
手牌形状评估

- 相邻组: 相邻两张牌能取到共同点数即属于同一组
- 手牌代价 (越低越好): 阻塞惩罚 - 组得分 - 灵活加成 + 边缘惩罚
- 混乱度与剩余回合估计 (启发式机器人使用)
- 最优插入: 为摸到或收回的牌寻找代价最低的位置
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from core.cards import Card, HIGH_VALUE

# 手牌代价系数
BLOCKER_WEIGHT = 3
FLEX_BONUS = 2
EDGE_PENALTY = 1


@dataclass(frozen=True)
class CardGroup:
    """相邻组 (手牌上连续的下标)"""
    start: int
    end: int  # 包含

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    @property
    def indices(self) -> Tuple[int, ...]:
        return tuple(range(self.start, self.end + 1))

    def __contains__(self, index: int) -> bool:
        return self.start <= index <= self.end


def shares_value(a: Card, b: Card) -> bool:
    """两张牌能否取到共同点数"""
    return bool(a.candidates & b.candidates)


def find_adjacent_groups(hand: Sequence[Card]) -> List[CardGroup]:
    """
    将手牌划分为极大相邻组

    单张牌自成一组，所以组覆盖整手牌

    Args:
        hand: 手牌

    Returns:
        组列表 (按位置排序)
    """
    if not hand:
        return []

    groups = []
    start = 0
    for i in range(1, len(hand)):
        if not shares_value(hand[i - 1], hand[i]):
            groups.append(CardGroup(start, i - 1))
            start = i
    groups.append(CardGroup(start, len(hand) - 1))
    return groups


def group_value(hand: Sequence[Card], indices: Sequence[int]) -> int:
    """组内所有牌的最大共同点数，没有共同点数时为 0"""
    feasible: Optional[FrozenSet[int]] = None
    for i in indices:
        values = hand[i].candidates
        feasible = values if feasible is None else feasible & values
    return max(feasible) if feasible else 0


def _value_positions(hand: Sequence[Card]) -> Dict[int, List[int]]:
    """每个点数出现的位置 (分裂牌计入两个点数)"""
    positions: Dict[int, List[int]] = {}
    for idx, card in enumerate(hand):
        for v in sorted(card.candidates):
            positions.setdefault(v, []).append(idx)
    return positions


def _group_of(groups: Sequence[CardGroup], index: int) -> CardGroup:
    for group in groups:
        if index in group:
            return group
    raise IndexError(index)


def count_blockers(hand: Sequence[Card], groups: Optional[Sequence[CardGroup]] = None) -> int:
    """
    同点数的相邻出现之间隔开的牌数之和

    已在同一组内的两次出现不计
    """
    if groups is None:
        groups = find_adjacent_groups(hand)

    blockers = 0
    for positions in _value_positions(hand).values():
        for prev, curr in zip(positions, positions[1:]):
            gap = curr - prev - 1
            if gap > 0 and _group_of(groups, prev) != _group_of(groups, curr):
                blockers += gap
    return blockers


def hand_cost(hand: Sequence[Card]) -> int:
    """
    手牌代价 (越低越好)

    cost = 3 * 阻塞牌数 - Σ 组大小² - 2 * 灵活分裂牌数 + 边缘高点单张数

    Args:
        hand: 手牌

    Returns:
        代价
    """
    if not hand:
        return 0

    groups = find_adjacent_groups(hand)
    last = len(hand) - 1

    groups_score = sum(g.size * g.size for g in groups)
    blockers_penalty = BLOCKER_WEIGHT * count_blockers(hand, groups)

    # 手牌两端落单的高点牌
    edge_penalty = 0
    for idx in {0, last}:
        if hand[idx].max_value >= HIGH_VALUE and _group_of(groups, idx).size < 2:
            edge_penalty += EDGE_PENALTY

    # 紧邻可加入的组的分裂牌
    flex_bonus = 0
    for idx, card in enumerate(hand):
        if not card.is_split:
            continue
        for neighbor in (idx - 1, idx + 1):
            if not 0 <= neighbor <= last:
                continue
            group = _group_of(groups, neighbor)
            if group.size >= 2 and any(shares_value(card, hand[i]) for i in group.indices if i != idx):
                flex_bonus += FLEX_BONUS
                break

    return blockers_penalty - groups_score - flex_bonus + edge_penalty


def messiness(hand: Sequence[Card]) -> float:
    """混乱度: 组数 - 1 + 0.5 * 同点数之间的间隔"""
    if not hand:
        return 0.0

    score = float(len(find_adjacent_groups(hand)) - 1)
    for positions in _value_positions(hand).values():
        for prev, curr in zip(positions, positions[1:]):
            gap = curr - prev - 1
            if gap > 0:
                score += gap * 0.5
    return score


def estimate_turns_to_empty(hand: Sequence[Card]) -> float:
    """粗略估计出完手牌需要的回合数"""
    if not hand:
        return 0.0
    return len(find_adjacent_groups(hand)) + messiness(hand) * 0.5


def max_group_size(hand: Sequence[Card]) -> int:
    return max((g.size for g in find_adjacent_groups(hand)), default=0)


def remove_positions(hand: Sequence[Card], positions: Sequence[int]) -> List[Card]:
    """去掉指定位置后的手牌"""
    selected = set(positions)
    return [card for i, card in enumerate(hand) if i not in selected]


def insert_card(hand: Sequence[Card], card: Card, position: int) -> List[Card]:
    result = list(hand)
    result.insert(position, card)
    return result


def apply_insertions(hand: Sequence[Card], insertions: Sequence[Tuple[Card, int]]) -> List[Card]:
    """依次插入 (每个位置相对于插入前一张后的手牌)"""
    result = list(hand)
    for card, position in insertions:
        result.insert(min(position, len(result)), card)
    return result


def best_position(hand: Sequence[Card], card: Card) -> Tuple[int, int]:
    """
    单张牌的最优插入位置

    Returns:
        (位置, 插入后的代价)，代价相同时取最靠前的位置
    """
    best_pos = len(hand)
    best_cost = None
    for pos in range(len(hand) + 1):
        cost = hand_cost(insert_card(hand, card, pos))
        if best_cost is None or cost < best_cost:
            best_cost = cost
            best_pos = pos
    return best_pos, best_cost


def find_optimal_insertion(
    hand: Sequence[Card],
    cards: Sequence[Card],
    max_iterations: int = 5,
) -> List[Tuple[Card, int]]:
    """
    为若干张牌寻找插入位置

    单张牌: 尝试所有位置。
    多张牌: 先逐张贪心插入，再对位置做有限轮两两交换的局部搜索，
    只接受严格降低代价的交换。

    Args:
        hand: 手牌
        cards: 要插入的牌
        max_iterations: 局部搜索的最大轮数

    Returns:
        [(牌, 位置), ...]，按顺序依次插入 (见 apply_insertions)
    """
    if not cards:
        return []

    if len(cards) == 1:
        pos, _ = best_position(hand, cards[0])
        return [(cards[0], pos)]

    # 贪心
    current = list(hand)
    insertions: List[Tuple[Card, int]] = []
    for card in cards:
        pos, _ = best_position(current, card)
        current.insert(pos, card)
        insertions.append((card, pos))

    # 局部搜索: 交换两张牌的插入位置
    best_cost = hand_cost(current)
    for _ in range(max_iterations):
        improved = False
        for i in range(len(insertions)):
            for j in range(i + 1, len(insertions)):
                trial = list(insertions)
                trial[i] = (insertions[i][0], insertions[j][1])
                trial[j] = (insertions[j][0], insertions[i][1])
                cost = hand_cost(apply_insertions(hand, trial))
                if cost < best_cost:
                    best_cost = cost
                    insertions = trial
                    improved = True
        if not improved:
            break

    # 规范化为实际可用的位置
    normalized = []
    size = len(hand)
    for card, pos in insertions:
        normalized.append((card, min(pos, size)))
        size += 1
    return normalized
