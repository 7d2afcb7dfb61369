"""
牌的定义与编码

RINGO 使用 72 张牌：
- 普通牌: 点数 1-8 各 8 张 (64 张)
- 分裂牌: 1/2, 3/4, 5/6, 7/8 各 2 张 (8 张)，打出时可取两个点数之一

牌 id 在整副牌的生命周期内唯一且稳定。
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple
import random

import numpy as np


class CardKind(Enum):
    """牌的种类"""
    STANDARD = "standard"  # 普通牌
    SPLIT = "split"        # 分裂牌


# 点数范围
MIN_VALUE = 1
MAX_VALUE = 8
VALUES: Tuple[int, ...] = tuple(range(MIN_VALUE, MAX_VALUE + 1))

# 每个点数的普通牌数量
CARDS_PER_VALUE = 8

# 分裂牌的点数对及每对数量
SPLIT_PAIRS: Tuple[Tuple[int, int], ...] = ((1, 2), (3, 4), (5, 6), (7, 8))
CARDS_PER_SPLIT_PAIR = 2

# 高点数阈值 (手牌边缘的高点单张视为不利)
HIGH_VALUE = 7


@dataclass(frozen=True, slots=True)
class Card:
    """
    不可变牌表示

    Attributes:
        id: 唯一 id
        value: 基础点数 (分裂牌为较小的点数)
        kind: 牌的种类
        split_values: 分裂牌可取的两个点数，普通牌为空
        resolved_value: 打出后确定的点数 (仅出现在桌面上的牌)
    """
    id: int
    value: int
    kind: CardKind = CardKind.STANDARD
    split_values: Tuple[int, ...] = ()
    resolved_value: Optional[int] = None

    @classmethod
    def standard(cls, card_id: int, value: int) -> 'Card':
        """创建普通牌"""
        if not MIN_VALUE <= value <= MAX_VALUE:
            raise ValueError(f"Card value out of range: {value}")
        return cls(id=card_id, value=value)

    @classmethod
    def split(cls, card_id: int, low: int, high: int) -> 'Card':
        """创建分裂牌"""
        if (low, high) not in SPLIT_PAIRS:
            raise ValueError(f"Unknown split pair: {low}/{high}")
        return cls(id=card_id, value=low, kind=CardKind.SPLIT, split_values=(low, high))

    @property
    def is_split(self) -> bool:
        return self.kind == CardKind.SPLIT

    @property
    def candidates(self) -> FrozenSet[int]:
        """可取的点数集合"""
        if self.kind == CardKind.STANDARD:
            return frozenset((self.value,))
        if self.kind == CardKind.SPLIT:
            return frozenset(self.split_values)
        raise ValueError(f"Unhandled card kind: {self.kind}")

    @property
    def max_value(self) -> int:
        """可取的最大点数"""
        return max(self.candidates)

    @property
    def effective_value(self) -> int:
        """
        桌面上的点数

        已确定点数的牌取确定值，未确定的分裂牌取较大值
        """
        if self.resolved_value is not None:
            return self.resolved_value
        return self.max_value

    def can_resolve_to(self, value: int) -> bool:
        return value in self.candidates

    def with_resolution(self, value: int) -> 'Card':
        """返回带有确定点数的新牌 (不修改原牌)"""
        if not self.can_resolve_to(value):
            raise ValueError(f"Card {self.id} cannot resolve to {value}")
        return replace(self, resolved_value=value)

    def unresolved(self) -> 'Card':
        """去掉确定点数 (牌回到手牌或牌堆时)"""
        if self.resolved_value is None:
            return self
        return replace(self, resolved_value=None)

    def __str__(self) -> str:
        if self.is_split:
            return f"{self.split_values[0]}/{self.split_values[1]}"
        return str(self.value)


def build_deck() -> Tuple[Card, ...]:
    """
    按固定顺序构建完整牌组 (未洗牌)

    id 0-63 为普通牌，64-71 为分裂牌
    """
    deck: List[Card] = []
    card_id = 0
    for value in VALUES:
        for _ in range(CARDS_PER_VALUE):
            deck.append(Card.standard(card_id, value))
            card_id += 1
    for low, high in SPLIT_PAIRS:
        for _ in range(CARDS_PER_SPLIT_PAIR):
            deck.append(Card.split(card_id, low, high))
            card_id += 1
    return tuple(deck)


# 完整牌组 (72 张)
FULL_DECK: Tuple[Card, ...] = build_deck()

# id 到牌的映射
CARD_BY_ID: Dict[int, Card] = {card.id: card for card in FULL_DECK}

DECK_SIZE = len(FULL_DECK)


def shuffle_deck(cards: Iterable[Card]) -> List[Card]:
    """洗牌 (返回新列表)"""
    shuffled = list(cards)
    random.shuffle(shuffled)
    return shuffled


def card_ids(cards: Iterable[Card]) -> List[int]:
    """牌列表转 id 列表"""
    return [card.id for card in cards]


# 编码列: 8 个点数 + 4 种分裂牌
ENCODING_COLUMNS: Tuple[str, ...] = tuple(
    [str(v) for v in VALUES] + [f"{low}/{high}" for low, high in SPLIT_PAIRS]
)
_COLUMN_INDEX: Dict[str, int] = {name: i for i, name in enumerate(ENCODING_COLUMNS)}


def cards_to_array(cards: Sequence[Card]) -> np.ndarray:
    """
    将牌列表转换为 12 维计数向量

    编码方式:
    - 前 8 维: 点数 1-8 的普通牌数量
    - 后 4 维: 1/2, 3/4, 5/6, 7/8 分裂牌数量

    Args:
        cards: 牌列表

    Returns:
        12 维 numpy 数组 (float32)
    """
    counts = np.zeros(len(ENCODING_COLUMNS), dtype=np.float32)
    for card in cards:
        counts[_COLUMN_INDEX[str(card)]] += 1
    return counts


def cards_to_str(cards: Sequence[Card]) -> str:
    """
    将牌列表转换为可读字符串 (保留手牌顺序)

    Returns:
        如 "3 3 5/6 8"
    """
    return ' '.join(str(card) for card in cards)


def str_to_cards(s: str, start_id: int = 1000) -> List[Card]:
    """
    将字符串转换为牌列表 (用于测试和脚本)

    生成的牌 id 从 start_id 开始递增，不属于 FULL_DECK

    Args:
        s: 牌字符串，如 "3 3 5/6 8"
        start_id: 起始 id

    Returns:
        牌列表
    """
    cards = []
    for offset, token in enumerate(s.split()):
        card_id = start_id + offset
        if '/' in token:
            low, high = (int(part) for part in token.split('/'))
            cards.append(Card.split(card_id, low, high))
        else:
            cards.append(Card.standard(card_id, int(token)))
    return cards


def draw_from_deck(s: str, pool: Optional[Dict[int, Card]] = None) -> List[Card]:
    """
    按字符串从 FULL_DECK 中取出真实的牌 (每张牌只取一次)

    Args:
        s: 牌字符串，如 "3 3 5/6"
        pool: 可取的牌 (会被修改)，默认使用整副牌的副本

    Returns:
        牌列表
    """
    if pool is None:
        pool = dict(CARD_BY_ID)
    cards = []
    for token in s.split():
        match = next((c for c in pool.values() if str(c) == token), None)
        if match is None:
            raise ValueError(f"No card left for token: {token}")
        cards.append(pool.pop(match.id))
    return cards
