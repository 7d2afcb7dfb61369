"""
前向模拟

对一个候选动作在多个采样世界中向前模拟若干步，统计:
- 机器人在视野内获胜的概率
- 对手在接下来两步内获胜的概率
- 动作之后下家手牌很少且能压过 (送出终结机会) 的概率
- 获胜时的平均回合数

模拟世界是从不可变快照复制出的轻量可变结构，每次试验独立复制
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import random

from core.cards import Card
from core.actions import Combo, RescueOption
from core.rules import RuleEngine
from core.state import GameState

from .belief import BeliefTracker
from .config import NightmareConfig
from .sampler import HiddenWorld, sample_hidden_world
from .shape import best_position, find_optimal_insertion, apply_insertions, hand_cost, remove_positions

logger = logging.getLogger(__name__)


class CandidateKind(Enum):
    """候选动作种类"""
    PLAY = "play"
    DRAW = "draw"
    TAKE_PILE = "take_pile"
    DISCARD_PILE = "discard_pile"
    RESCUE = "rescue"
    INSERT = "insert"


@dataclass(frozen=True)
class Candidate:
    """
    候选动作

    Attributes:
        kind: 种类
        indices: 出牌/救援的手牌下标
        size: 组合张数
        value: 组合点数
        position: 救援时摸到的牌的插入位置
    """
    kind: CandidateKind
    indices: Tuple[int, ...] = ()
    size: int = 0
    value: int = 0
    position: Optional[int] = None

    @classmethod
    def play(cls, combo: Combo) -> 'Candidate':
        return cls(CandidateKind.PLAY, combo.positions, combo.size, combo.value)

    @classmethod
    def rescue(cls, option: RescueOption) -> 'Candidate':
        return cls(CandidateKind.RESCUE, option.combo_indices, option.combo.size,
                   option.combo.value, option.insert_position)

    @classmethod
    def of(cls, kind: CandidateKind) -> 'Candidate':
        return cls(kind)

    @property
    def places_combo(self) -> bool:
        return self.kind in (CandidateKind.PLAY, CandidateKind.RESCUE)


@dataclass
class RolloutStats:
    """模拟统计"""
    win_probability: float
    lose_soon_probability: float
    gives_finisher_probability: float
    avg_turns_to_win: float
    trials: int

    def utility(self, config: NightmareConfig) -> float:
        """模拟部分的效用"""
        return (
            config.win_weight * self.win_probability
            - config.turns_weight * self.avg_turns_to_win
            - config.lose_soon_weight * self.lose_soon_probability
            - config.finisher_weight * self.gives_finisher_probability
        )


@dataclass
class TrialOutcome:
    """单次试验结果"""
    bot_won: bool = False
    opponent_won: bool = False
    lost_soon: bool = False
    gave_finisher: bool = False
    bot_turns: int = 0


class SimWorld:
    """
    模拟用的可变世界

    被压过的桌面牌直接进入弃牌堆 (模拟中不做收牌决策)
    """

    __slots__ = ("order", "hands", "draw_pile", "discard_pile", "table",
                 "table_value", "table_owner", "current", "held")

    def __init__(
        self,
        order: List[str],
        hands: Dict[str, List[Card]],
        draw_pile: List[Card],
        discard_pile: List[Card],
        table: List[Card],
        table_value: int,
        table_owner: Optional[str],
        current: int,
        held: List[Card],
    ):
        self.order = order
        self.hands = hands
        self.draw_pile = draw_pile
        self.discard_pile = discard_pile
        self.table = table
        self.table_value = table_value
        self.table_owner = table_owner
        self.current = current
        self.held = held

    @classmethod
    def from_world(cls, world: HiddenWorld, state: GameState) -> 'SimWorld':
        combo = state.table_combo
        return cls(
            order=[p.id for p in state.players],
            hands={pid: list(hand) for pid, hand in world.hands.items()},
            draw_pile=list(world.draw_pile),
            discard_pile=list(world.discard_pile),
            table=list(world.table),
            table_value=combo.value if combo else 0,
            table_owner=state.table_owner,
            current=state.current_player_index,
            held=list(world.held),
        )

    @property
    def current_id(self) -> str:
        return self.order[self.current]

    @property
    def next_id(self) -> str:
        return self.order[(self.current + 1) % len(self.order)]

    @property
    def table_combo(self) -> Optional[Combo]:
        if not self.table:
            return None
        return Combo(value=self.table_value, size=len(self.table))

    def draw_card(self) -> Optional[Card]:
        """摸一张牌，必要时将弃牌堆洗入摸牌堆"""
        if not self.draw_pile and self.discard_pile:
            self.draw_pile = self.discard_pile
            random.shuffle(self.draw_pile)
            self.discard_pile = []
        if not self.draw_pile:
            return None
        return self.draw_pile.pop()

    def play(self, player_id: str, positions: Sequence[int], value: int) -> bool:
        """
        出牌

        Returns:
            出牌后手牌是否为空
        """
        hand = self.hands[player_id]
        played = [hand[i] for i in positions]
        self.hands[player_id] = remove_positions(hand, positions)
        self.discard_pile.extend(self.table)
        self.table = played
        self.table_value = value
        self.table_owner = player_id
        return not self.hands[player_id]

    def advance(self) -> None:
        """轮到下家，桌面回到主人时收桌"""
        self.current = (self.current + 1) % len(self.order)
        if self.table and self.table_owner == self.current_id:
            self.discard_pile.extend(self.table)
            self.table = []
            self.table_value = 0
            self.table_owner = None


def choose_bot_play(hand: Sequence[Card], current: Optional[Combo]) -> Optional[Combo]:
    """
    模拟中机器人的出牌策略

    出牌后手牌代价最低优先，其次是不多于桌面张数的出牌，再次张数多、点数大
    """
    combos = RuleEngine.find_valid_combos(hand, current)
    if not combos:
        return None

    def key(combo: Combo):
        cost = hand_cost(remove_positions(hand, combo.positions))
        efficient = current is not None and combo.size <= current.size
        return (cost, not efficient, -combo.size, -combo.value)

    return min(combos, key=key)


def choose_opponent_play(hand: Sequence[Card], current: Optional[Combo]) -> Optional[Combo]:
    """
    模拟中对手的出牌策略

    空桌面出最大最高的组合，否则用最小的组合压过
    """
    combos = RuleEngine.find_valid_combos(hand, current)
    if not combos:
        return None
    if current is None:
        return max(combos, key=lambda c: (c.size, c.value))
    return min(combos, key=lambda c: (c.size, c.value))


class RolloutSimulator:
    """
    前向模拟器

    Args:
        config: 配置
        tracker: 对手信念 (用于采样)
        visible_player_ids: 手牌可见的其他玩家
    """

    def __init__(
        self,
        config: Optional[NightmareConfig] = None,
        tracker: Optional[BeliefTracker] = None,
        visible_player_ids: Sequence[str] = (),
    ):
        self.config = config or NightmareConfig()
        self.tracker = tracker
        self.visible_player_ids = tuple(visible_player_ids)

    def simulate(
        self,
        state: GameState,
        bot_id: str,
        candidate: Candidate,
        horizon: Optional[int] = None,
        num_samples: Optional[int] = None,
    ) -> RolloutStats:
        """
        对候选动作做多次模拟

        Args:
            state: 真实状态 (轮到机器人)
            bot_id: 机器人 id
            candidate: 候选动作
            horizon: 模拟步数
            num_samples: 试验次数

        Returns:
            RolloutStats
        """
        horizon = self.config.horizon if horizon is None else horizon
        num_samples = self.config.num_samples if num_samples is None else num_samples

        wins = lose_soon = finisher = 0
        turns_total = 0

        for _ in range(num_samples):
            world = sample_hidden_world(state, bot_id, self.tracker, self.visible_player_ids)
            sim = SimWorld.from_world(world, state)
            outcome = self.run_trial(sim, bot_id, candidate, horizon)

            if outcome.bot_won:
                wins += 1
                turns_total += outcome.bot_turns
            lose_soon += int(outcome.lost_soon)
            finisher += int(outcome.gave_finisher)

        n = max(1, num_samples)
        logger.debug("Rollout %s%s: %d/%d wins", candidate.kind.value, list(candidate.indices), wins, num_samples)
        return RolloutStats(
            win_probability=wins / n,
            lose_soon_probability=lose_soon / n,
            gives_finisher_probability=finisher / n,
            avg_turns_to_win=turns_total / wins if wins else float(horizon),
            trials=num_samples,
        )

    def run_trial(self, sim: SimWorld, bot_id: str, candidate: Candidate, horizon: int) -> TrialOutcome:
        """在一个世界中执行候选动作并向前模拟"""
        outcome = TrialOutcome(bot_turns=1)

        if self._apply_candidate(sim, bot_id, candidate):
            outcome.bot_won = True
            return outcome

        if candidate.places_combo:
            outcome.gave_finisher = self._gives_finisher(sim, bot_id)

        sim.advance()

        for ply in range(1, horizon + 1):
            pid = sim.current_id
            hand = sim.hands[pid]
            is_bot = pid == bot_id
            if is_bot:
                outcome.bot_turns += 1

            choose = choose_bot_play if is_bot else choose_opponent_play
            combo = choose(hand, sim.table_combo)

            if combo is not None:
                if sim.play(pid, combo.positions, combo.value):
                    if is_bot:
                        outcome.bot_won = True
                    else:
                        outcome.opponent_won = True
                        outcome.lost_soon = ply <= self.config.lose_soon_plies
                    return outcome
            else:
                card = sim.draw_card()
                if card is None:
                    # 无牌可摸也无牌可出，本次试验提前结束
                    return outcome
                if is_bot:
                    pos, _ = best_position(hand, card)
                    hand.insert(pos, card)
                else:
                    hand.append(card)

            sim.advance()

        return outcome

    def _apply_candidate(self, sim: SimWorld, bot_id: str, candidate: Candidate) -> bool:
        """执行候选动作，返回机器人手牌是否为空"""
        hand = sim.hands[bot_id]
        kind = candidate.kind

        if kind == CandidateKind.PLAY:
            return sim.play(bot_id, candidate.indices, candidate.value)

        if kind == CandidateKind.RESCUE:
            drawn = sim.held.pop()
            pos = candidate.position
            virtual = hand[:pos] + [drawn] + hand[pos:]
            positions = sorted([i if i < pos else i + 1 for i in candidate.indices] + [pos])
            sim.hands[bot_id] = virtual
            return sim.play(bot_id, positions, candidate.value)

        if kind == CandidateKind.INSERT:
            drawn = sim.held.pop()
            pos, _ = best_position(hand, drawn)
            hand.insert(pos, drawn)
        elif kind == CandidateKind.DRAW:
            card = sim.draw_card()
            if card is not None:
                pos, _ = best_position(hand, card)
                hand.insert(pos, card)
        elif kind == CandidateKind.TAKE_PILE:
            insertions = find_optimal_insertion(hand, sim.held, self.config.max_swap_iterations)
            sim.hands[bot_id] = apply_insertions(hand, insertions)
            sim.held = []
        elif kind == CandidateKind.DISCARD_PILE:
            sim.discard_pile.extend(sim.held)
            sim.held = []

        return not sim.hands[bot_id]

    def _gives_finisher(self, sim: SimWorld, bot_id: str) -> bool:
        """下家手牌很少且能压过桌面"""
        next_id = sim.next_id
        if next_id == bot_id:
            return False
        hand = sim.hands[next_id]
        if len(hand) > self.config.finisher_hand_size:
            return False
        return RuleEngine.can_beat(hand, sim.table_combo)
