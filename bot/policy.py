"""
Nightmare 决策策略

出牌决策: 枚举候选动作，每个候选的效用为
    120·P(胜) - 8·E[获胜回合数] - 150·P(对手很快获胜) - 100·P(送出终结机会) + 启发式加成
取效用最高者；摸牌只有在效用超过最佳出牌一定差值时才会被选择。

收牌、插入、救援使用对称的简单规则，必要时比较模拟结果。
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import logging

from core.cards import Card
from core.actions import Combo, RescueOption
from core.rules import RuleEngine
from core.state import GameState

from .belief import BotContext
from .config import NightmareConfig
from .rollout import Candidate, CandidateKind, RolloutSimulator
from .shape import (
    best_position,
    find_adjacent_groups,
    find_optimal_insertion,
    hand_cost,
    max_group_size,
    remove_positions,
    shares_value,
)

logger = logging.getLogger(__name__)

# 启发式加成
PLAY_BONUS = 20
SIZE_BONUS = 6
EFFICIENT_BONUS = 12
DANGER_BONUS = 25
UNBLOCK_BONUS = 18
LARGER_GROUP_BONUS = 15
COST_REDUCTION_WEIGHT = 2

# 收桌加成
PILE_CLOSE_MIN_SIZE = 4
PILE_CLOSE_THRESHOLD = 0.3
PILE_CLOSE_WEIGHT = 10


class DecisionType(Enum):
    """决策种类"""
    PLAY = "play"
    DRAW = "draw"
    DISCARD_ALL = "discard_all"
    INSERT_ALL = "insert_all"
    INSERT = "insert"
    DISCARD = "discard"
    RESCUE = "rescue"


@dataclass(frozen=True)
class BotDecision:
    """
    机器人决策

    Attributes:
        action: 决策种类
        indices: 出牌或救援的手牌下标
        position: 插入位置 (插入摸到的牌或救援时摸到的牌的位置)
        insertions: 收牌插入计划 ((card_id, position), ...)，按顺序执行
        utility: 选中候选的效用
    """
    action: DecisionType
    indices: Tuple[int, ...] = ()
    position: Optional[int] = None
    insertions: Tuple[Tuple[int, int], ...] = ()
    utility: Optional[float] = None


def _opponent_sizes(state: GameState, bot_id: str) -> List[int]:
    return [len(p.hand) for p in state.players if p.id != bot_id]


class NightmarePolicy:
    """
    Nightmare 机器人

    Args:
        context: 房间内该机器人的决策上下文 (信念、配置)
    """

    def __init__(self, context: BotContext):
        self.context = context

    @property
    def config(self) -> NightmareConfig:
        return self.context.config

    def _simulator(self) -> RolloutSimulator:
        return RolloutSimulator(self.config, self.context.tracker, self.context.visible_player_ids)

    # ------------------------------------------------------------------
    # 出牌
    # ------------------------------------------------------------------

    def decide_turn(self, state: GameState, bot_id: str) -> BotDecision:
        """
        出牌或摸牌

        没有合法出牌时总是摸牌

        Args:
            state: 当前状态 (轮到机器人出牌)
            bot_id: 机器人 id

        Returns:
            PLAY (带下标) 或 DRAW
        """
        self.context.tracker.ensure_players(state.players)

        hand = state.get_hand(bot_id)
        current = state.table_combo
        combos = RuleEngine.find_valid_combos(hand, current)

        if not combos:
            return BotDecision(DecisionType.DRAW)

        # 对手快要出完: 立即用最小的组合压过
        if min(_opponent_sizes(state, bot_id), default=99) <= self.config.emergency_hand_size:
            combo = min(combos, key=lambda c: (c.size, c.value))
            logger.debug("%s emergency play %s", bot_id, list(combo.positions))
            return BotDecision(DecisionType.PLAY, indices=combo.positions)

        if current is None:
            combos.sort(key=lambda c: (
                hand_cost(remove_positions(hand, c.positions)),
                -(c.size * 10 + c.value),
            ))
            combos = combos[:self.config.max_candidates]

        simulator = self._simulator()
        best_play: Optional[Combo] = None
        best_play_utility = float('-inf')

        for combo in combos:
            stats = simulator.simulate(state, bot_id, Candidate.play(combo))
            utility = stats.utility(self.config) + self.play_bonus(state, bot_id, combo)
            if utility > best_play_utility:
                best_play_utility = utility
                best_play = combo

        if current is not None and (state.draw_pile or state.discard_pile):
            stats = simulator.simulate(state, bot_id, Candidate.of(CandidateKind.DRAW))
            draw_utility = stats.utility(self.config)
            if draw_utility > best_play_utility + self.config.draw_margin:
                logger.debug("%s draws (utility %.1f vs play %.1f)", bot_id, draw_utility, best_play_utility)
                return BotDecision(DecisionType.DRAW, utility=draw_utility)

        logger.debug("%s plays %s (utility %.1f)", bot_id, list(best_play.positions), best_play_utility)
        return BotDecision(DecisionType.PLAY, indices=best_play.positions, utility=best_play_utility)

    def play_bonus(self, state: GameState, bot_id: str, combo: Combo) -> float:
        """出牌的启发式加成"""
        hand = state.get_hand(bot_id)
        current = state.table_combo
        after = remove_positions(hand, combo.positions)

        bonus = PLAY_BONUS + SIZE_BONUS * combo.size
        if current is not None and combo.size <= current.size:
            bonus += EFFICIENT_BONUS
        if min(_opponent_sizes(state, bot_id), default=99) <= self.config.danger_hand_size:
            bonus += DANGER_BONUS

        old_groups = find_adjacent_groups(hand)
        new_groups = find_adjacent_groups(after)
        if len(new_groups) < len(old_groups):
            bonus += UNBLOCK_BONUS
        if max_group_size(after) > max_group_size(hand):
            bonus += LARGER_GROUP_BONUS

        old_cost = hand_cost(hand)
        new_cost = hand_cost(after)
        if new_cost < old_cost:
            bonus += COST_REDUCTION_WEIGHT * (old_cost - new_cost)

        if combo.size >= PILE_CLOSE_MIN_SIZE:
            bonus += self.pile_close_bonus(state, bot_id, combo.size, after)

        return bonus

    def pass_probability(self, state: GameState, bot_id: str, size: int) -> float:
        """估计其他所有玩家都压不过该张数组合的概率"""
        n = len(state.players)
        probability = 1.0
        for offset in range(1, n):
            player = state.players[(state.current_player_index + offset) % n]
            if player.id == bot_id:
                continue

            hand_size = len(player.hand)
            belief = self.context.tracker.get(player.id)
            if size >= 5 and hand_size < 5:
                probability *= 0.75
            elif size >= 4 and hand_size < 6:
                probability *= 0.65
            elif belief is not None:
                probability *= 1 - belief.can_respond_to(size)
            else:
                probability *= 0.4
        return probability

    def pile_close_bonus(self, state: GameState, bot_id: str, size: int, after: Sequence[Card]) -> float:
        """大组合迫使所有人摸牌、回到自己时收桌的收益"""
        probability = self.pass_probability(state, bot_id, size)
        if probability <= PILE_CLOSE_THRESHOLD or not after:
            return 0.0

        bonus = size * PILE_CLOSE_WEIGHT * probability
        largest = max((g.size for g in find_adjacent_groups(after)), default=0)
        if largest >= 3:
            bonus += 20
        elif largest >= 2:
            bonus += 10
        return bonus

    # ------------------------------------------------------------------
    # 收牌
    # ------------------------------------------------------------------

    def decide_capture(self, state: GameState, bot_id: str, captured: Sequence[Card]) -> BotDecision:
        """
        收回的牌全部插入还是全部弃掉

        有分裂牌或能凑成三张时全部插入，否则比较模拟胜率
        """
        hand = state.get_hand(bot_id)

        take = any(card.is_split for card in captured)
        if not take:
            for card in captured:
                if any(sum(1 for c in hand if c.can_resolve_to(v)) >= 2 for v in card.candidates):
                    take = True
                    break

        if not take:
            simulator = self._simulator()
            horizon = self.config.decision_horizon
            take_stats = simulator.simulate(state, bot_id, Candidate.of(CandidateKind.TAKE_PILE), horizon)
            discard_stats = simulator.simulate(state, bot_id, Candidate.of(CandidateKind.DISCARD_PILE), horizon)
            take = take_stats.win_probability > discard_stats.win_probability + self.config.capture_take_margin

        if not take:
            return BotDecision(DecisionType.DISCARD_ALL)

        insertions = find_optimal_insertion(hand, captured, self.config.max_swap_iterations)
        return BotDecision(
            DecisionType.INSERT_ALL,
            insertions=tuple((card.id, pos) for card, pos in insertions),
        )

    # ------------------------------------------------------------------
    # 插入摸到的牌
    # ------------------------------------------------------------------

    def decide_insertion(self, state: GameState, bot_id: str, card: Card) -> BotDecision:
        """能与手牌凑组或降低手牌代价时插入，否则弃掉"""
        hand = state.get_hand(bot_id)
        position, new_cost = best_position(hand, card)

        matches = any(shares_value(card, c) for c in hand)
        if not matches and new_cost >= hand_cost(hand):
            return BotDecision(DecisionType.DISCARD)
        return BotDecision(DecisionType.INSERT, position=position)

    # ------------------------------------------------------------------
    # 救援出牌
    # ------------------------------------------------------------------

    def decide_rescue(
        self,
        state: GameState,
        bot_id: str,
        drawn_card: Card,
        rescue_possible: bool,
        rescue_info: Optional[RescueOption],
    ) -> BotDecision:
        """
        救援出牌还是插入

        能出 2 张以上或对手危险时救援，否则比较模拟胜率
        """
        if not rescue_possible or rescue_info is None:
            return BotDecision(DecisionType.INSERT)

        rescue = BotDecision(
            DecisionType.RESCUE,
            indices=rescue_info.combo_indices,
            position=rescue_info.insert_position,
        )

        if rescue_info.size >= 2:
            return rescue
        if min(_opponent_sizes(state, bot_id), default=99) <= self.config.emergency_hand_size:
            return rescue

        simulator = self._simulator()
        horizon = self.config.decision_horizon
        rescue_stats = simulator.simulate(state, bot_id, Candidate.rescue(rescue_info), horizon)
        insert_stats = simulator.simulate(state, bot_id, Candidate.of(CandidateKind.INSERT), horizon)
        if rescue_stats.win_probability > insert_stats.win_probability:
            return rescue
        return BotDecision(DecisionType.INSERT)
