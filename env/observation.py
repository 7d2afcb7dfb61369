"""
观察空间编码

将游戏状态投影到某个玩家视角后编码为 numpy 特征
"""
from dataclasses import dataclass
from typing import Dict, List

import numpy as np
from gymnasium import spaces

from core.cards import DECK_SIZE, ENCODING_COLUMNS, MAX_VALUE, cards_to_array
from core.actions import Move
from core.state import GameState, TurnPhase

# 手牌顺序编码的长度 (超出部分截断)
MAX_HAND_OBS = 32

PHASES: List[TurnPhase] = list(TurnPhase)

# 编码列数 (8 个点数 + 4 种分裂牌)
NUM_COLUMNS = len(ENCODING_COLUMNS)


@dataclass
class Observation:
    """
    结构化观测

    Attributes:
        hand: 自己手牌的点数计数 (12,)
        hand_sequence: 按顺序排列的手牌最大点数，0 表示空位 (MAX_HAND_OBS,)
        split_mask: 对应位置是否为分裂牌 (MAX_HAND_OBS,)
        table: 桌面组合 [张数, 点数, 是否为自己] (3,)
        opponent_hand_sizes: 其他玩家手牌数，从下家开始 (max_players - 1,)
        piles: [摸牌堆张数, 弃牌堆张数] (2,)
        phase: 回合阶段 one-hot (len(TurnPhase),)
        drawn_card: 摸到的牌 (12,)
        capture: 待处理的收牌 (12,)
        legal_moves: 合法动作
    """
    hand: np.ndarray
    hand_sequence: np.ndarray
    split_mask: np.ndarray
    table: np.ndarray
    opponent_hand_sizes: np.ndarray
    piles: np.ndarray
    phase: np.ndarray
    drawn_card: np.ndarray
    capture: np.ndarray
    legal_moves: List[Move]

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {
            "hand": self.hand,
            "hand_sequence": self.hand_sequence,
            "split_mask": self.split_mask,
            "table": self.table,
            "opponent_hand_sizes": self.opponent_hand_sizes,
            "piles": self.piles,
            "phase": self.phase,
            "drawn_card": self.drawn_card,
            "capture": self.capture,
        }

    def to_flat_array(self) -> np.ndarray:
        return np.concatenate([v.ravel() for v in self.to_dict().values()]).astype(np.float32)


class ObservationBuilder:
    """
    观测构建器

    只使用玩家可见的信息 (PublicState)
    """

    def __init__(self, max_players: int = 5):
        self.max_players = max_players

    def observation_space(self) -> spaces.Dict:
        n = len(PHASES)
        return spaces.Dict({
            "hand": spaces.Box(0, DECK_SIZE, shape=(NUM_COLUMNS,), dtype=np.float32),
            "hand_sequence": spaces.Box(0, MAX_VALUE, shape=(MAX_HAND_OBS,), dtype=np.float32),
            "split_mask": spaces.Box(0, 1, shape=(MAX_HAND_OBS,), dtype=np.float32),
            "table": spaces.Box(0, DECK_SIZE, shape=(3,), dtype=np.float32),
            "opponent_hand_sizes": spaces.Box(0, DECK_SIZE, shape=(self.max_players - 1,), dtype=np.float32),
            "piles": spaces.Box(0, DECK_SIZE, shape=(2,), dtype=np.float32),
            "phase": spaces.Box(0, 1, shape=(n,), dtype=np.float32),
            "drawn_card": spaces.Box(0, 1, shape=(NUM_COLUMNS,), dtype=np.float32),
            "capture": spaces.Box(0, DECK_SIZE, shape=(NUM_COLUMNS,), dtype=np.float32),
        })

    def build(self, state: GameState, player_id: str) -> Observation:
        """
        从游戏状态构建观测

        Args:
            state: 游戏状态
            player_id: 视角玩家

        Returns:
            Observation
        """
        view = state.public_view(player_id)
        me = next(p for p in view.players if p.id == player_id)
        hand = me.hand or ()

        hand_sequence = np.zeros(MAX_HAND_OBS, dtype=np.float32)
        split_mask = np.zeros(MAX_HAND_OBS, dtype=np.float32)
        for i, card in enumerate(hand[:MAX_HAND_OBS]):
            hand_sequence[i] = card.max_value
            split_mask[i] = float(card.is_split)

        table = np.zeros(3, dtype=np.float32)
        if view.table:
            table[0] = len(view.table)
            table[1] = view.table[0].effective_value
            table[2] = float(view.table_owner == player_id)

        # 从下家开始的其他玩家手牌数
        seat = next(i for i, p in enumerate(view.players) if p.id == player_id)
        n = len(view.players)
        opponent_hand_sizes = np.zeros(self.max_players - 1, dtype=np.float32)
        for k in range(1, n):
            opponent_hand_sizes[k - 1] = view.players[(seat + k) % n].hand_size

        piles = np.array([view.draw_pile_size, view.discard_pile_size], dtype=np.float32)

        phase = np.zeros(len(PHASES), dtype=np.float32)
        phase[PHASES.index(view.turn_phase)] = 1

        drawn = [view.drawn_card] if view.drawn_card is not None else []
        capture = list(view.pending_capture.cards) if view.pending_capture is not None else []

        legal_moves = state.get_legal_moves() if state.current_player.id == player_id else []

        return Observation(
            hand=cards_to_array(hand),
            hand_sequence=hand_sequence,
            split_mask=split_mask,
            table=table,
            opponent_hand_sizes=opponent_hand_sizes,
            piles=piles,
            phase=phase,
            drawn_card=cards_to_array(drawn),
            capture=cards_to_array(capture),
            legal_moves=legal_moves,
        )
