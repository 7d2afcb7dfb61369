"""
评估指标

对局指标的收集与在线统计
"""
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from collections import defaultdict

import numpy as np


@dataclass
class GameMetrics:
    """单局游戏指标"""
    winner: Optional[str]
    players: Tuple[str, ...]
    length: int
    stalled: bool = False
    illegal_moves: int = 0
    hand_sizes: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_match(cls, result) -> 'GameMetrics':
        """从 Arena 的 MatchResult 构建"""
        return cls(
            winner=result.winner,
            players=result.agents,
            length=result.length,
            stalled=result.stalled,
            illegal_moves=result.illegal_moves,
            hand_sizes=dict(result.hand_sizes),
        )


class MetricsCollector:
    """
    指标收集器

    收集和计算对局指标
    """

    def __init__(self):
        self.games: List[GameMetrics] = []
        self._stats: Dict[str, Dict] = defaultdict(lambda: defaultdict(list))

    def add_game(self, metrics: GameMetrics):
        """添加游戏指标"""
        self.games.append(metrics)

        for player in metrics.players:
            stats = self._stats[player]
            stats["games"].append(1)
            stats["wins"].append(1 if metrics.winner == player else 0)
            stats["lengths"].append(metrics.length)
            stats["stalls"].append(1 if metrics.stalled else 0)
            stats["cards_left"].append(metrics.hand_sizes.get(player, 0))

    def add_match(self, result):
        self.add_game(GameMetrics.from_match(result))

    def compute_metrics(self, player: Optional[str] = None) -> Dict[str, float]:
        """
        计算指标

        Args:
            player: 指定玩家，None 表示全局

        Returns:
            指标字典
        """
        if player is not None:
            stats = self._stats[player]
            n_games = len(stats["games"])

            if n_games == 0:
                return {}

            return {
                "games": n_games,
                "win_rate": float(np.mean(stats["wins"])),
                "avg_length": float(np.mean(stats["lengths"])),
                "stall_rate": float(np.mean(stats["stalls"])),
                "avg_cards_left": float(np.mean(stats["cards_left"])),
            }

        # 全局统计
        n_games = len(self.games)
        if n_games == 0:
            return {}

        return {
            "total_games": n_games,
            "avg_length": float(np.mean([g.length for g in self.games])),
            "stall_rate": float(np.mean([1 if g.stalled else 0 for g in self.games])),
            "illegal_moves": int(sum(g.illegal_moves for g in self.games)),
        }

    def reset(self):
        """重置"""
        self.games.clear()
        self._stats.clear()


class RunningStats:
    """
    数值样本统计 (如单次决策耗时)

    保留全部样本，按需用 numpy 计算分位数
    """

    def __init__(self):
        self.values: List[float] = []

    def update(self, x: float):
        self.values.append(float(x))

    @property
    def n(self) -> int:
        return len(self.values)

    @property
    def mean(self) -> float:
        return float(np.mean(self.values)) if self.values else 0.0

    @property
    def std(self) -> float:
        # 样本标准差
        if self.n < 2:
            return 0.0
        return float(np.std(self.values, ddof=1))

    def percentile(self, q: float) -> float:
        if not self.values:
            return 0.0
        return float(np.percentile(self.values, q))

    def to_dict(self) -> Dict[str, float]:
        return {
            "count": self.n,
            "mean": self.mean,
            "std": self.std,
            "p50": self.percentile(50),
            "p95": self.percentile(95),
            "max": max(self.values) if self.values else 0.0,
        }


class MetricsAggregator:
    """
    按智能体聚合数值指标

    Arena 用它记录每个智能体的决策耗时 (毫秒)
    """

    def __init__(self):
        self.metrics: Dict[str, RunningStats] = defaultdict(RunningStats)

    def add(self, name: str, value: float):
        self.metrics[name].update(value)

    def get(self, name: str) -> Dict[str, float]:
        if name not in self.metrics:
            return {}
        return self.metrics[name].to_dict()

    def get_all(self) -> Dict[str, Dict[str, float]]:
        return {name: stats.to_dict() for name, stats in self.metrics.items()}

    def reset(self):
        self.metrics.clear()


def win_rate_interval(wins: int, games: int, z: float = 1.96) -> Tuple[float, float]:
    """
    胜率的 Wilson 置信区间

    Args:
        wins: 胜场
        games: 总场次
        z: 正态分位数 (1.96 对应 95%)

    Returns:
        (下界, 上界)
    """
    if games == 0:
        return 0.0, 0.0
    p = wins / games
    denom = 1 + z ** 2 / games
    center = (p + z ** 2 / (2 * games)) / denom
    half = z * np.sqrt(p * (1 - p) / games + z ** 2 / (4 * games ** 2)) / denom
    return float(max(0.0, center - half)), float(min(1.0, center + half))
