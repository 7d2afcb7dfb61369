"""
启发式机器人 (Easy / Medium / Hard)

不做模拟，只根据手牌混乱度和剩余回合估计做决策，
决策入口与 Nightmare 机器人相同
"""
from enum import Enum
from typing import Optional, Sequence
import random

from core.cards import Card
from core.actions import Combo, RescueOption
from core.rules import RuleEngine
from core.state import GameState

from .config import HeuristicConfig
from .policy import BotDecision, DecisionType
from .shape import estimate_turns_to_empty, insert_card, messiness, remove_positions, shares_value


class BotDifficulty(Enum):
    """难度"""
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


DIFFICULTY_NAMES = {
    BotDifficulty.EASY: "Rookie",
    BotDifficulty.MEDIUM: "Pro",
    BotDifficulty.HARD: "Master",
}


def find_best_insert_position(hand: Sequence[Card], card: Card, difficulty: BotDifficulty) -> int:
    """
    按邻居匹配和混乱度变化选择插入位置

    与左右邻居能凑组各加 10 分；Medium/Hard 另外奖励混乱度的降低
    """
    if not hand:
        return 0

    old_messiness = messiness(hand)
    best_pos = len(hand)
    best_score = float('-inf')

    for pos in range(len(hand) + 1):
        score = 0.0
        if pos > 0 and shares_value(card, hand[pos - 1]):
            score += 10
        if pos < len(hand) and shares_value(card, hand[pos]):
            score += 10
        if difficulty != BotDifficulty.EASY:
            score += (old_messiness - messiness(insert_card(hand, card, pos))) * 5

        if score > best_score:
            best_score = score
            best_pos = pos

    return best_pos


class HeuristicPolicy:
    """
    启发式机器人

    Args:
        difficulty: 难度
        config: 配置
        rng: 随机数源 (默认使用全局 random)
    """

    def __init__(
        self,
        difficulty: BotDifficulty = BotDifficulty.MEDIUM,
        config: Optional[HeuristicConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.difficulty = difficulty
        self.config = config or HeuristicConfig()
        self.rng = rng or random

    def _min_opponent(self, state: GameState, bot_id: str) -> int:
        return min((len(p.hand) for p in state.players if p.id != bot_id), default=99)

    # ------------------------------------------------------------------
    # 出牌
    # ------------------------------------------------------------------

    def decide_turn(self, state: GameState, bot_id: str) -> BotDecision:
        hand = state.get_hand(bot_id)
        current = state.table_combo
        combos = RuleEngine.find_valid_combos(hand, current)
        if not combos:
            return BotDecision(DecisionType.DRAW)

        if self.difficulty == BotDifficulty.EASY:
            combo = self._easy_play(combos, current)
        elif self.difficulty == BotDifficulty.MEDIUM:
            combo = self._medium_play(state, bot_id, hand, combos, current)
        else:
            combo = self._hard_play(state, bot_id, hand, combos, current)

        return BotDecision(DecisionType.PLAY, indices=combo.positions)

    def _easy_play(self, combos, current: Optional[Combo]) -> Combo:
        # 空桌面出最大的组合，否则用最小的组合压过
        if current is None:
            return max(combos, key=lambda c: (c.size, c.value))
        return min(combos, key=lambda c: (c.size, c.value))

    def _medium_play(self, state, bot_id, hand, combos, current) -> Combo:
        base = messiness(hand)

        if current is None:
            def score(c):
                return (base - messiness(remove_positions(hand, c.positions))) * 3 + c.size * 2 + c.value
            return max(combos, key=score)

        if self._min_opponent(state, bot_id) <= self.config.danger_hand_size:
            return min(combos, key=lambda c: (c.size, c.value))

        def score(c):
            return (base - messiness(remove_positions(hand, c.positions))) * 4 - c.size * 2 + c.value
        return max(combos, key=score)

    def _hard_play(self, state, bot_id, hand, combos, current) -> Combo:
        base = messiness(hand)
        min_opponent = self._min_opponent(state, bot_id)
        in_danger = min_opponent <= self.config.hard_danger_hand_size

        if current is None:
            if in_danger:
                # 出难以压过的组合
                return max(combos, key=lambda c: c.size * 10 + c.value)

            def score(c):
                after = remove_positions(hand, c.positions)
                return -estimate_turns_to_empty(after) * 5 + (base - messiness(after)) * 3 + c.size * 2
            return max(combos, key=score)

        next_player = state.players[state.next_player_index()]
        best = combos[0]
        best_score = float('-inf')

        for c in combos:
            after = remove_positions(hand, c.positions)
            tempo = 5 if in_danger else 0
            ammo = c.size if c.size >= 3 else 0
            denial = c.size * 3 if len(next_player.hand) <= self.config.danger_hand_size else 0
            score = 6 * c.size + 4 * (base - messiness(after)) + 5 * tempo - 3 * ammo + denial

            # 小幅随机扰动
            score += (self.rng.random() - 0.5) * score * self.config.hard_randomness * 2
            if score > best_score:
                best_score = score
                best = c

        return best

    # ------------------------------------------------------------------
    # 收牌
    # ------------------------------------------------------------------

    def decide_capture(self, state: GameState, bot_id: str, captured: Sequence[Card]) -> BotDecision:
        hand = state.get_hand(bot_id)

        if self.difficulty == BotDifficulty.EASY:
            take = False
        elif self.difficulty == BotDifficulty.MEDIUM:
            take = any(card.is_split or any(shares_value(card, c) for c in hand) for card in captured)
        else:
            take = self._hard_takes(hand, captured)

        if not take:
            return BotDecision(DecisionType.DISCARD_ALL)

        insertions = []
        current = list(hand)
        for card in captured:
            pos = self._insert_position(current, card)
            current.insert(pos, card)
            insertions.append((card.id, pos))
        return BotDecision(DecisionType.INSERT_ALL, insertions=tuple(insertions))

    def _hard_takes(self, hand: Sequence[Card], captured: Sequence[Card]) -> bool:
        if any(card.is_split for card in captured):
            return True

        take_score = 0
        for card in captured:
            if any(shares_value(card, c) for c in hand):
                take_score += 3
            # 残局的高点牌
            if len(hand) <= 5 and card.max_value >= 7:
                take_score += 2
        return take_score > len(captured) * 2

    # ------------------------------------------------------------------
    # 插入
    # ------------------------------------------------------------------

    def _insert_position(self, hand: Sequence[Card], card: Card) -> int:
        if self.difficulty == BotDifficulty.EASY:
            if self.rng.random() < 0.5:
                return len(hand)
            return self.rng.randrange(len(hand) + 1)

        if self.difficulty == BotDifficulty.HARD:
            best_pos = 0
            best_turns = float('inf')
            for pos in range(len(hand) + 1):
                turns = estimate_turns_to_empty(insert_card(hand, card, pos))
                if turns < best_turns:
                    best_turns = turns
                    best_pos = pos
            return best_pos

        return find_best_insert_position(hand, card, self.difficulty)

    def decide_insertion(self, state: GameState, bot_id: str, card: Card) -> BotDecision:
        """启发式机器人总是插入摸到的牌"""
        return BotDecision(DecisionType.INSERT, position=self._insert_position(state.get_hand(bot_id), card))

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
        if not rescue_possible or rescue_info is None:
            return BotDecision(DecisionType.INSERT)

        rescue = BotDecision(
            DecisionType.RESCUE,
            indices=rescue_info.combo_indices,
            position=rescue_info.insert_position,
        )

        if self.difficulty == BotDifficulty.EASY:
            if self.rng.random() < self.config.easy_rescue_probability:
                return rescue
            return BotDecision(DecisionType.INSERT)

        if self.difficulty == BotDifficulty.MEDIUM:
            return rescue

        if rescue_info.size >= 2 or self._min_opponent(state, bot_id) <= self.config.danger_hand_size:
            return rescue
        if self.rng.random() < self.config.hard_single_rescue_decline:
            return BotDecision(DecisionType.INSERT)
        return rescue
