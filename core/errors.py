"""
异常定义

- IllegalMoveError: 预期内的校验失败，不修改状态
- InconsistencyError: 逻辑缺陷 (规则算法自相矛盾)，不应被当作普通校验失败吞掉
"""


class IllegalMoveError(ValueError):
    """非法操作 (错误的玩家/阶段/下标/牌型等)"""


class InconsistencyError(RuntimeError):
    """内部不一致 (例如自动确定点数后无法固定分裂牌，或牌守恒被破坏)"""
