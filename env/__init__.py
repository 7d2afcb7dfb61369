"""
Environment Layer - Gymnasium 兼容环境

Modules:
    ringo_env: 主环境类
    observation: 观测空间构建
    reward: 奖励函数
"""
from .ringo_env import (
    RingoEnv,
    make_env,
    AGENT_ID,
    MAX_ACTIONS,
)

from .observation import (
    Observation,
    ObservationBuilder,
    MAX_HAND_OBS,
)

from .reward import (
    RewardType,
    RewardConfig,
    RewardCalculator,
    create_reward_calculator,
)

__all__ = [
    # env
    "RingoEnv",
    "make_env",
    "AGENT_ID",
    "MAX_ACTIONS",
    # observation
    "Observation",
    "ObservationBuilder",
    "MAX_HAND_OBS",
    # reward
    "RewardType",
    "RewardConfig",
    "RewardCalculator",
    "create_reward_calculator",
]
