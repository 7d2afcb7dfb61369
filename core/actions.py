"""
牌组合与动作定义

- Combo: 一次出牌的完整描述 (手牌位置区间、共同点数、张数、分裂牌取值)
- Move: 玩家在状态机上的一次操作 (封闭的动作种类集合)
"""
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from .cards import Card


@dataclass(frozen=True, slots=True)
class Combo:
    """
    不可变牌组合

    Attributes:
        value: 共同点数
        size: 张数
        positions: 在手牌中的位置 (连续、升序)；桌面牌组合为空
        resolutions: 分裂牌取值 ((card_id, value), ...)，按 card_id 排序
    """
    value: int
    size: int
    positions: Tuple[int, ...] = ()
    resolutions: Tuple[Tuple[int, int], ...] = ()

    @classmethod
    def of_table(cls, cards: Sequence[Card]) -> Optional['Combo']:
        """从桌面上的牌构建组合 (空桌面返回 None)"""
        if not cards:
            return None
        return cls(value=cards[0].effective_value, size=len(cards))

    @property
    def resolution_map(self) -> Dict[int, int]:
        return dict(self.resolutions)

    def __len__(self) -> int:
        return self.size


@dataclass(frozen=True, slots=True)
class RescueOption:
    """
    摸牌后的救援出牌方案

    Attributes:
        insert_position: 摸到的牌虚拟插入的位置 (原手牌坐标)
        combo_indices: 参与组合的原手牌下标 (不含摸到的牌)
        combo: 插入后手牌上的组合 (虚拟坐标)
    """
    insert_position: int
    combo_indices: Tuple[int, ...]
    combo: Combo

    @property
    def size(self) -> int:
        return self.combo.size


class MoveType(Enum):
    """动作类型"""
    PLAY = "play"                      # 出牌
    DRAW = "draw"                      # 摸牌
    RESCUE = "rescue"                  # 摸牌后救援出牌 (RINGO)
    INSERT_DRAWN = "insert_drawn"      # 将摸到的牌插入手牌
    DISCARD_DRAWN = "discard_drawn"    # 弃掉摸到的牌
    CAPTURE_DISCARD_ALL = "discard_all"  # 收回的牌全部弃掉
    CAPTURE_INSERT_ONE = "insert_one"    # 收回的牌插入一张


class CaptureAction(Enum):
    """收牌处理方式"""
    DISCARD_ALL = "discard_all"
    INSERT_ONE = "insert_one"


@dataclass(frozen=True, slots=True)
class Move:
    """
    不可变动作表示

    Attributes:
        move_type: 动作类型
        indices: 出牌/救援时的手牌下标
        position: 插入位置
        card_id: 收牌时插入的牌 id
        resolutions: 指定的分裂牌取值 ((card_id, value), ...)
    """
    move_type: MoveType
    indices: Tuple[int, ...] = ()
    position: Optional[int] = None
    card_id: Optional[int] = None
    resolutions: Tuple[Tuple[int, int], ...] = ()

    @classmethod
    def play(cls, indices: Sequence[int], resolutions: Optional[Dict[int, int]] = None) -> 'Move':
        return cls(MoveType.PLAY, indices=tuple(indices),
                   resolutions=tuple(sorted((resolutions or {}).items())))

    @classmethod
    def draw(cls) -> 'Move':
        return cls(MoveType.DRAW)

    @classmethod
    def rescue(cls, indices: Sequence[int], position: Optional[int] = None,
               resolutions: Optional[Dict[int, int]] = None) -> 'Move':
        return cls(MoveType.RESCUE, indices=tuple(indices), position=position,
                   resolutions=tuple(sorted((resolutions or {}).items())))

    @classmethod
    def insert_drawn(cls, position: int) -> 'Move':
        return cls(MoveType.INSERT_DRAWN, position=position)

    @classmethod
    def discard_drawn(cls) -> 'Move':
        return cls(MoveType.DISCARD_DRAWN)

    @classmethod
    def discard_capture(cls) -> 'Move':
        return cls(MoveType.CAPTURE_DISCARD_ALL)

    @classmethod
    def insert_capture(cls, card_id: int, position: Optional[int] = None) -> 'Move':
        return cls(MoveType.CAPTURE_INSERT_ONE, position=position, card_id=card_id)

    @property
    def resolution_map(self) -> Dict[int, int]:
        return dict(self.resolutions)

    def __str__(self) -> str:
        if self.move_type in (MoveType.PLAY, MoveType.RESCUE):
            return f"{self.move_type.value}{list(self.indices)}"
        if self.move_type == MoveType.CAPTURE_INSERT_ONE:
            return f"{self.move_type.value}(card={self.card_id}, pos={self.position})"
        if self.position is not None:
            return f"{self.move_type.value}(pos={self.position})"
        return self.move_type.value
