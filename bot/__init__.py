"""
Bot Layer - 机器人决策

Modules:
    config: 机器人配置
    shape: 手牌形状评估与最优插入
    belief: 对手信念模型
    sampler: 隐藏世界采样
    rollout: 前向模拟
    policy: Nightmare 决策
    heuristic: Easy/Medium/Hard 启发式决策
    worker: 决策线程池
"""
from .config import NightmareConfig, HeuristicConfig

from .shape import (
    CardGroup,
    find_adjacent_groups,
    group_value,
    hand_cost,
    messiness,
    estimate_turns_to_empty,
    find_optimal_insertion,
    apply_insertions,
)

from .belief import (
    BeliefState,
    BeliefTracker,
    BotContext,
    CountRange,
    Observation,
)

from .sampler import HiddenWorld, sample_hidden_world

from .rollout import (
    Candidate,
    CandidateKind,
    RolloutSimulator,
    RolloutStats,
    SimWorld,
)

from .policy import BotDecision, DecisionType, NightmarePolicy

from .heuristic import BotDifficulty, HeuristicPolicy

from .worker import DecisionWorker

__all__ = [
    # config
    "NightmareConfig",
    "HeuristicConfig",
    # shape
    "CardGroup",
    "find_adjacent_groups",
    "group_value",
    "hand_cost",
    "messiness",
    "estimate_turns_to_empty",
    "find_optimal_insertion",
    "apply_insertions",
    # belief
    "BeliefState",
    "BeliefTracker",
    "BotContext",
    "CountRange",
    "Observation",
    # sampler
    "HiddenWorld",
    "sample_hidden_world",
    # rollout
    "Candidate",
    "CandidateKind",
    "RolloutSimulator",
    "RolloutStats",
    "SimWorld",
    # policy
    "BotDecision",
    "DecisionType",
    "NightmarePolicy",
    # heuristic
    "BotDifficulty",
    "HeuristicPolicy",
    # worker
    "DecisionWorker",
]
