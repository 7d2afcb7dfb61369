"""
Core Layer - 纯游戏逻辑 (无机器人依赖)

Modules:
    cards: 牌定义与编码
    actions: 组合与动作类型
    rules: 规则引擎
    state: 游戏状态与回合状态机
    turns: 动作入口
    session: 房间会话
    errors: 异常
"""
from .cards import (
    Card,
    CardKind,
    FULL_DECK,
    CARD_BY_ID,
    DECK_SIZE,
    VALUES,
    SPLIT_PAIRS,
    HIGH_VALUE,
    build_deck,
    shuffle_deck,
    cards_to_array,
    cards_to_str,
    str_to_cards,
    draw_from_deck,
)

from .actions import (
    Combo,
    RescueOption,
    MoveType,
    CaptureAction,
    Move,
)

from .rules import RuleEngine, BeatCheck

from .state import (
    GameStatus,
    TurnPhase,
    GameConfig,
    Player,
    PendingCapture,
    PublicPlayer,
    PublicState,
    GameState,
)

from .turns import (
    ActionResult,
    create_game,
    public_view,
    play,
    draw,
    rescue_play,
    insert_drawn_card,
    discard_drawn_card,
    resolve_capture,
    apply_move,
)

from .session import GameSession

from .errors import IllegalMoveError, InconsistencyError

__all__ = [
    # cards
    "Card",
    "CardKind",
    "FULL_DECK",
    "CARD_BY_ID",
    "DECK_SIZE",
    "VALUES",
    "SPLIT_PAIRS",
    "HIGH_VALUE",
    "build_deck",
    "shuffle_deck",
    "cards_to_array",
    "cards_to_str",
    "str_to_cards",
    "draw_from_deck",
    # actions
    "Combo",
    "RescueOption",
    "MoveType",
    "CaptureAction",
    "Move",
    # rules
    "RuleEngine",
    "BeatCheck",
    # state
    "GameStatus",
    "TurnPhase",
    "GameConfig",
    "Player",
    "PendingCapture",
    "PublicPlayer",
    "PublicState",
    "GameState",
    # turns
    "ActionResult",
    "create_game",
    "public_view",
    "play",
    "draw",
    "rescue_play",
    "insert_drawn_card",
    "discard_drawn_card",
    "resolve_capture",
    "apply_move",
    # session
    "GameSession",
    # errors
    "IllegalMoveError",
    "InconsistencyError",
]
