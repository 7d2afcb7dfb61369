"""
Evaluation Layer - 机器人对战评估

Modules:
    evaluator: 智能体和评估器
    arena: 对战竞技场
    metrics: 评估指标
"""
from .evaluator import (
    EvalResult,
    Agent,
    RandomAgent,
    PolicyAgent,
    HeuristicAgent,
    NightmareAgent,
    Evaluator,
    AGENT_TYPES,
    create_agent,
)
from .arena import (
    MatchResult,
    TournamentResult,
    Arena,
)
from .metrics import (
    GameMetrics,
    MetricsCollector,
    RunningStats,
    MetricsAggregator,
    win_rate_interval,
)

__all__ = [
    # evaluator
    "EvalResult",
    "Agent",
    "RandomAgent",
    "PolicyAgent",
    "HeuristicAgent",
    "NightmareAgent",
    "Evaluator",
    "AGENT_TYPES",
    "create_agent",
    # arena
    "MatchResult",
    "TournamentResult",
    "Arena",
    # metrics
    "GameMetrics",
    "MetricsCollector",
    "RunningStats",
    "MetricsAggregator",
    "win_rate_interval",
]
