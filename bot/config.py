"""
机器人配置

定义 Nightmare 机器人和启发式机器人的参数
"""
from dataclasses import dataclass


@dataclass
class NightmareConfig:
    """
    Nightmare 机器人配置

    Attributes:
        num_samples: 每个候选动作的模拟次数
        horizon: 出牌决策的模拟步数
        decision_horizon: 收牌/救援比较的模拟步数
        max_candidates: 空桌面时保留的候选数 (按出牌后手牌代价排序)
        draw_margin: 摸牌效用需超过最佳出牌的差值
        emergency_hand_size: 对手手牌数不超过此值时立即出最小的牌
        danger_hand_size: 对手手牌数不超过此值时出牌加成
        capture_take_margin: 收牌胜率需超过弃牌胜率的差值
    """
    # 模拟参数
    num_samples: int = 32
    horizon: int = 6
    decision_horizon: int = 4
    lose_soon_plies: int = 2
    max_candidates: int = 15

    # 效用权重
    win_weight: float = 120.0
    turns_weight: float = 8.0
    lose_soon_weight: float = 150.0
    finisher_weight: float = 100.0

    # 决策阈值
    draw_margin: float = 20.0
    emergency_hand_size: int = 2
    danger_hand_size: int = 4
    finisher_hand_size: int = 2
    capture_take_margin: float = 0.1

    # 插入搜索
    max_swap_iterations: int = 5

    @classmethod
    def from_dict(cls, d: dict) -> 'NightmareConfig':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        return cls(**filtered)


@dataclass
class HeuristicConfig:
    """
    启发式机器人配置 (Easy/Medium/Hard)

    Attributes:
        easy_rescue_probability: Easy 接受救援出牌的概率
        danger_hand_size: Medium/Hard 认为对手危险的手牌数
        hard_danger_hand_size: Hard 空桌面出牌时认为对手危险的手牌数
        hard_randomness: Hard 出牌评分的随机扰动幅度
        hard_single_rescue_decline: Hard 拒绝单张救援出牌的概率
    """
    easy_rescue_probability: float = 0.5
    danger_hand_size: int = 2
    hard_danger_hand_size: int = 3
    hard_randomness: float = 0.05
    hard_single_rescue_decline: float = 0.3

    @classmethod
    def from_dict(cls, d: dict) -> 'HeuristicConfig':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        return cls(**filtered)
