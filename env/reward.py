"""
奖励函数

- 终局奖励 (sparse): 赢 +1，输 -1
- 过程奖励 (shaped): 终局奖励 + 每出掉一张牌的小奖励
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.state import GameState


class RewardType(Enum):
    """奖励类型"""
    SPARSE = "sparse"
    SHAPED = "shaped"


@dataclass
class RewardConfig:
    """
    奖励配置

    Attributes:
        reward_type: 奖励类型
        win_reward: 获胜奖励
        lose_reward: 失败奖励
        invalid_action_penalty: 非法动作惩罚 (状态不变)
        card_shed_bonus: 每减少一张手牌的奖励 (shaped)
    """
    reward_type: RewardType = RewardType.SPARSE
    win_reward: float = 1.0
    lose_reward: float = -1.0
    invalid_action_penalty: float = -1.0
    card_shed_bonus: float = 0.01

    @classmethod
    def from_dict(cls, d: dict) -> 'RewardConfig':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        if isinstance(filtered.get("reward_type"), str):
            filtered["reward_type"] = RewardType(filtered["reward_type"])
        return cls(**filtered)


class RewardCalculator:
    """奖励计算器"""

    def __init__(self, config: Optional[RewardConfig] = None):
        self.config = config or RewardConfig()

    def compute(
        self,
        state: GameState,
        prev_state: Optional[GameState],
        player_id: str,
    ) -> float:
        """
        计算奖励

        Args:
            state: 当前状态
            prev_state: 前一状态 (用于 shaped 奖励)
            player_id: 玩家

        Returns:
            奖励值
        """
        reward = self._terminal_reward(state, player_id)

        if self.config.reward_type == RewardType.SHAPED and prev_state is not None and not state.is_finished:
            shed = len(prev_state.get_hand(player_id)) - len(state.get_hand(player_id))
            reward += shed * self.config.card_shed_bonus

        return reward

    def _terminal_reward(self, state: GameState, player_id: str) -> float:
        if not state.is_finished:
            return 0.0
        if state.winner == player_id:
            return self.config.win_reward
        return self.config.lose_reward


def create_reward_calculator(reward_type: str = "sparse", **kwargs) -> RewardCalculator:
    """
    工厂函数：创建奖励计算器

    Args:
        reward_type: 奖励类型 ("sparse", "shaped")
        **kwargs: 其他配置参数
    """
    return RewardCalculator(RewardConfig(reward_type=RewardType(reward_type), **kwargs))
