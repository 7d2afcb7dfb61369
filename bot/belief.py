"""
对手信念模型

对每个对手维护软证据 (手牌不可见):
- 每个点数的可能张数范围 [min, max]
- 有相邻组/对子/三张的概率
- 能压过某张数组合的概率
- 观察到的行为计数

所有概率单调更新并限制在 [0, 1] 内
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple
import logging
import math

from core.cards import VALUES, CARDS_PER_VALUE
from core.actions import Move, MoveType
from core.state import GameState, Player
from core.turns import ActionResult

from .config import NightmareConfig

logger = logging.getLogger(__name__)

# 先验
COUNT_MAX_PRIOR = 3
ADJACENCY_PRIOR = 0.5
PAIRS_PRIOR = 0.3
TRIPLES_PRIOR = 0.1
RESPOND_PRIOR = 0.5
RESPOND_UNKNOWN = 0.3

# 更新步长
RESPOND_SIZES = 5


@dataclass
class CountRange:
    """某个点数的可能张数范围"""
    min: int = 0
    max: int = COUNT_MAX_PRIOR

    @property
    def midpoint(self) -> int:
        return (self.min + self.max) // 2


def _clamp(p: float) -> float:
    return max(0.0, min(1.0, p))


@dataclass
class BeliefState:
    """
    单个对手的信念

    Attributes:
        possible_counts: 点数 -> 可能张数范围
        has_adjacency: 有相邻组的概率
        has_pairs: 有对子的概率
        has_triples: 有三张的概率
        can_respond: 组合张数 -> 能压过的概率
        beat_count: 出牌次数
        draw_count: 摸牌次数
        pile_take_count: 收牌次数
        observed_plays: 出过的组合 (张数, 点数)
    """
    possible_counts: Dict[int, CountRange] = field(
        default_factory=lambda: {v: CountRange() for v in VALUES}
    )
    has_adjacency: float = ADJACENCY_PRIOR
    has_pairs: float = PAIRS_PRIOR
    has_triples: float = TRIPLES_PRIOR
    can_respond: Dict[int, float] = field(
        default_factory=lambda: {k: RESPOND_PRIOR for k in VALUES}
    )
    beat_count: int = 0
    draw_count: int = 0
    pile_take_count: int = 0
    observed_plays: List[Tuple[int, int]] = field(default_factory=list)

    def observe_play(self, size: int, value: int) -> None:
        self.beat_count += 1
        if size >= 2:
            self.has_adjacency = _clamp(self.has_adjacency + 0.2)
            if size == 2:
                self.has_pairs = _clamp(self.has_pairs + 0.3)
            if size >= 3:
                self.has_triples = _clamp(self.has_triples + 0.2)

        for k in range(1, min(size, RESPOND_SIZES) + 1):
            self.can_respond[k] = _clamp(self.can_respond.get(k, RESPOND_PRIOR) + 0.1)

        self.observed_plays.append((size, value))

    def observe_draw(self) -> None:
        self.draw_count += 1
        # 连续摸牌说明缺少相邻组
        if self.draw_count > 2:
            self.has_adjacency = _clamp(self.has_adjacency - 0.1)

    def observe_pile_take(self) -> None:
        self.pile_take_count += 1
        self.has_adjacency = _clamp(self.has_adjacency + 0.15)

    def clamp_to_hand_size(self, hand_size: int) -> None:
        """以手牌数作为每个点数张数的软上限"""
        ceiling = math.ceil(hand_size / len(VALUES) * 1.5)
        for counts in self.possible_counts.values():
            counts.max = max(0, min(counts.max, ceiling, CARDS_PER_VALUE))
            counts.min = min(counts.min, counts.max)

    def can_respond_to(self, size: int) -> float:
        return self.can_respond.get(size, RESPOND_UNKNOWN)


class Observation(Enum):
    """可观察到的对手行为"""
    PLAY = "play"
    DRAW = "draw"
    TAKE_PILE = "take_pile"


class BeliefTracker:
    """
    一个机器人对房间内其他玩家的信念集合

    第一次见到某个对手时创建，随房间上下文一起丢弃
    """

    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        self.beliefs: Dict[str, BeliefState] = {}
        self._open_captures: Dict[str, FrozenSet[int]] = {}

    def ensure_players(self, players: Sequence[Player]) -> None:
        for p in players:
            if p.id != self.owner_id and p.id not in self.beliefs:
                self.beliefs[p.id] = BeliefState()

    def get(self, player_id: str) -> Optional[BeliefState]:
        return self.beliefs.get(player_id)

    def observe(
        self,
        player_id: str,
        kind: Observation,
        hand_size: int,
        combo_size: int = 1,
        combo_value: int = 0,
    ) -> None:
        """
        记录一次对手行为

        Args:
            player_id: 对手
            kind: 行为种类
            hand_size: 行为之后的手牌数
            combo_size: 出牌张数
            combo_value: 出牌点数
        """
        if player_id == self.owner_id:
            return
        belief = self.beliefs.setdefault(player_id, BeliefState())

        if kind == Observation.PLAY:
            belief.observe_play(combo_size, combo_value)
        elif kind == Observation.DRAW:
            belief.observe_draw()
        elif kind == Observation.TAKE_PILE:
            belief.observe_pile_take()

        belief.clamp_to_hand_size(hand_size)
        logger.debug("Belief update for %s: %s (adjacency %.2f)", player_id, kind.value, belief.has_adjacency)

    def observe_move(
        self,
        before: GameState,
        player_id: str,
        move: Move,
        result: ActionResult,
    ) -> None:
        """将一次被接受的动作映射为信念更新"""
        if not result.success or player_id == self.owner_id:
            return

        after = result.state
        hand_size = len(after.get_hand(player_id))

        if move.move_type in (MoveType.PLAY, MoveType.RESCUE):
            played = result.played_combo
            value = played[0].effective_value if played else 0
            self.observe(player_id, Observation.PLAY, hand_size, len(played) or len(move.indices), value)
        elif move.move_type == MoveType.DRAW:
            self.observe(player_id, Observation.DRAW, hand_size)
        elif move.move_type == MoveType.CAPTURE_INSERT_ONE:
            # 同一次收牌插入多张只记一次
            previous = before.pending_capture
            seen = frozenset(c.id for c in previous.cards) if previous else frozenset()
            if self._open_captures.get(player_id) != seen:
                self.observe(player_id, Observation.TAKE_PILE, hand_size)
            remaining = after.pending_capture
            if remaining is not None and remaining.owner == player_id:
                self._open_captures[player_id] = frozenset(c.id for c in remaining.cards)
            else:
                self._open_captures.pop(player_id, None)


@dataclass
class BotContext:
    """
    机器人的决策上下文 (由房间会话持有)

    Attributes:
        room_key: 房间标识
        bot_id: 机器人 id
        tracker: 对手信念
        config: 决策配置
        visible_player_ids: 手牌对机器人可见的玩家 (机器人之间对战时)
    """
    room_key: str
    bot_id: str
    tracker: BeliefTracker
    config: NightmareConfig = field(default_factory=NightmareConfig)
    visible_player_ids: Tuple[str, ...] = ()

    @classmethod
    def create(cls, room_key: str, bot_id: str, config: Optional[NightmareConfig] = None) -> 'BotContext':
        return cls(
            room_key=room_key,
            bot_id=bot_id,
            tracker=BeliefTracker(bot_id),
            config=config or NightmareConfig(),
        )

    def observe(self, before: GameState, player_id: str, move: Move, result: ActionResult) -> None:
        """房间会话的动作观察者"""
        self.tracker.ensure_players(before.players)
        self.tracker.observe_move(before, player_id, move, result)
