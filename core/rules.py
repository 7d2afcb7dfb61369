"""
规则引擎 - 相邻性校验、共同点数确定、大小比较、合法出牌枚举

所有方法都是纯函数，无状态
"""
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Sequence

from .cards import Card
from .actions import Combo, RescueOption
from .errors import IllegalMoveError, InconsistencyError


class BeatCheck(NamedTuple):
    """大小比较结果"""
    valid: bool
    reason: str


class RuleEngine:
    """
    RINGO 规则引擎

    提供组合合法性校验、点数确定、大小比较、合法出牌枚举等功能
    所有方法都是静态方法，无状态
    """

    @staticmethod
    def validate_adjacent_cards(hand: Sequence[Card], positions: Sequence[int]) -> bool:
        """
        检查手牌位置是否非空、连续且不越界

        Args:
            hand: 手牌 (顺序有意义)
            positions: 选中的位置

        Returns:
            是否合法
        """
        if not positions:
            return False

        ordered = sorted(positions)
        for i in range(len(ordered) - 1):
            if ordered[i + 1] != ordered[i] + 1:
                return False

        return 0 <= ordered[0] and ordered[-1] < len(hand)

    @staticmethod
    def candidate_values(card: Card, forced: Optional[int] = None) -> FrozenSet[int]:
        """
        单张牌的候选点数

        Args:
            card: 牌
            forced: 指定的点数

        Returns:
            候选点数集合
        """
        if forced is None:
            return card.candidates
        if not card.can_resolve_to(forced):
            raise IllegalMoveError(f"Card {card} cannot resolve to {forced}")
        return frozenset((forced,))

    @staticmethod
    def resolve_combo(
        hand: Sequence[Card],
        positions: Sequence[int],
        resolutions: Optional[Dict[int, int]] = None,
    ) -> Combo:
        """
        确定组合的共同点数

        每张牌贡献一个候选集合 (普通牌为单元素，分裂牌为两个点数，
        指定了取值的牌为指定值)，所有候选集合的交集为可行点数。
        自动确定时取最大的可行点数，并将所有分裂牌固定到该点数。

        Args:
            hand: 手牌
            positions: 选中的位置
            resolutions: 指定的分裂牌取值 {card_id: value}

        Returns:
            组合

        Raises:
            IllegalMoveError: 位置不合法或无共同点数
            InconsistencyError: 可行点数无法固定到某张分裂牌
        """
        if not RuleEngine.validate_adjacent_cards(hand, positions):
            raise IllegalMoveError("Cards must be adjacent")

        forced = resolutions or {}
        ordered = sorted(positions)
        cards = [hand[i] for i in ordered]

        feasible: Optional[FrozenSet[int]] = None
        for card in cards:
            values = RuleEngine.candidate_values(card, forced.get(card.id))
            feasible = values if feasible is None else feasible & values

        if not feasible:
            raise IllegalMoveError("Cards cannot resolve to a common value")

        # 取最大可行点数，最大化后续压牌能力
        target = max(feasible)
        return Combo(
            value=target,
            size=len(cards),
            positions=tuple(ordered),
            resolutions=RuleEngine._pin_split_cards(cards, target),
        )

    @staticmethod
    def _pin_split_cards(cards: Sequence[Card], target: int):
        """将分裂牌固定到目标点数"""
        pinned = []
        for card in cards:
            if not card.is_split:
                continue
            if not card.can_resolve_to(target):
                raise InconsistencyError(
                    f"Split card {card} cannot pin to resolved value {target}"
                )
            pinned.append((card.id, target))
        return tuple(sorted(pinned))

    @staticmethod
    def validate_beat(current: Optional[Combo], candidate: Combo) -> BeatCheck:
        """
        检查新组合能否压过桌面组合

        - 空桌面: 任意合法组合
        - 张数更多: 总能压过
        - 张数相同: 点数必须严格更大
        - 张数更少: 不能压过

        Args:
            current: 桌面组合 (None 表示空桌面)
            candidate: 新组合

        Returns:
            BeatCheck
        """
        if current is None:
            return BeatCheck(True, "Empty table")

        if candidate.size > current.size:
            return BeatCheck(True, "More cards beats fewer cards")

        if candidate.size == current.size:
            if candidate.value <= current.value:
                return BeatCheck(
                    False,
                    f"Same size combo must be strictly higher value "
                    f"(current: {current.value}, played: {candidate.value})",
                )
            return BeatCheck(True, "Higher value")

        return BeatCheck(
            False,
            f"Cannot play fewer cards than current combo "
            f"(current: {current.size}, played: {candidate.size})",
        )

    @staticmethod
    def beats(current: Optional[Combo], candidate: Combo) -> bool:
        """validate_beat 的布尔版本"""
        if current is None:
            return True
        if candidate.size != current.size:
            return candidate.size > current.size
        return candidate.value > current.value

    @staticmethod
    def find_valid_combos(hand: Sequence[Card], current: Optional[Combo] = None) -> List[Combo]:
        """
        枚举手牌中所有能压过桌面的连续区间

        交集只会随区间变长而缩小，为空时即可停止向右扩展

        Args:
            hand: 手牌
            current: 桌面组合

        Returns:
            组合列表 (按起始位置、长度排序)
        """
        combos = []
        n = len(hand)

        for start in range(n):
            feasible: Optional[FrozenSet[int]] = None
            for end in range(start, n):
                values = hand[end].candidates
                feasible = values if feasible is None else feasible & values
                if not feasible:
                    break

                cards = hand[start:end + 1]
                target = max(feasible)
                combo = Combo(
                    value=target,
                    size=len(cards),
                    positions=tuple(range(start, end + 1)),
                    resolutions=RuleEngine._pin_split_cards(cards, target),
                )
                if RuleEngine.beats(current, combo):
                    combos.append(combo)

        return combos

    @staticmethod
    def find_rescue_options(
        hand: Sequence[Card],
        drawn_card: Card,
        current: Optional[Combo] = None,
    ) -> List[RescueOption]:
        """
        枚举摸到的牌所有可行的救援出牌方案

        将摸到的牌虚拟插入 len(hand)+1 个位置中的每一个，
        检查所有包含该位置的连续区间能否构成压过桌面的组合。

        Args:
            hand: 手牌 (不含摸到的牌)
            drawn_card: 摸到的牌
            current: 桌面组合

        Returns:
            救援方案列表
        """
        options = []

        for insert_pos in range(len(hand) + 1):
            virtual = list(hand[:insert_pos]) + [drawn_card] + list(hand[insert_pos:])

            left: Optional[FrozenSet[int]] = None
            for start in range(insert_pos, -1, -1):
                values = virtual[start].candidates
                left = values if left is None else left & values
                if not left:
                    break

                feasible = left
                for end in range(insert_pos, len(virtual)):
                    if end > insert_pos:
                        feasible = feasible & virtual[end].candidates
                        if not feasible:
                            break

                    cards = virtual[start:end + 1]
                    target = max(feasible)
                    combo = Combo(
                        value=target,
                        size=len(cards),
                        positions=tuple(range(start, end + 1)),
                        resolutions=RuleEngine._pin_split_cards(cards, target),
                    )
                    if not RuleEngine.beats(current, combo):
                        continue

                    # 映射回原手牌坐标
                    combo_indices = tuple(
                        i if i < insert_pos else i - 1
                        for i in range(start, end + 1)
                        if i != insert_pos
                    )
                    options.append(RescueOption(insert_pos, combo_indices, combo))

        return options

    @staticmethod
    def check_insertion_possibility(
        hand: Sequence[Card],
        drawn_card: Optional[Card],
        current: Optional[Combo] = None,
    ) -> Optional[RescueOption]:
        """
        检查摸到的牌能否构成救援出牌

        搜索所有插入位置和区间，返回张数最多、点数最大的方案

        Returns:
            最佳救援方案，不存在时返回 None
        """
        if drawn_card is None:
            return None

        best = None
        for option in RuleEngine.find_rescue_options(hand, drawn_card, current):
            if best is None or (option.combo.size, option.combo.value) > (best.combo.size, best.combo.value):
                best = option
        return best

    @staticmethod
    def can_beat(hand: Sequence[Card], current: Optional[Combo]) -> bool:
        """检查手牌中是否存在能压过桌面的组合"""
        return bool(RuleEngine.find_valid_combos(hand, current))
