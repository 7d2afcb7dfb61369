"""
动作入口

对外 (房间/传输层) 暴露的操作，统一返回 ActionResult:
- 成功: success=True, state 为新快照，附带副作用信息
- 失败: success=False, state 为原快照，error 为可读原因

内部不一致 (InconsistencyError) 不会被转换为普通失败
"""
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple
import logging

from .cards import Card
from .actions import CaptureAction, Move, MoveType, RescueOption
from .state import GameConfig, GameState, Player, PublicState
from .errors import IllegalMoveError

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """
    动作结果

    Attributes:
        success: 是否成功
        state: 结果状态 (失败时为原状态)
        error: 失败原因
        drawn_card: 摸到的牌 (draw)
        rescue_possible: 摸到的牌能否救援出牌 (draw)
        rescue_info: 最佳救援方案 (draw)
        previous_combo: 被压过的上一组桌面牌 (play/rescue)
        played_combo: 打出的牌 (play/rescue)
        inserted_card: 插入手牌的牌 (insert)
        discarded_card: 弃掉的牌 (discard)
    """
    success: bool
    state: GameState
    error: Optional[str] = None
    drawn_card: Optional[Card] = None
    rescue_possible: bool = False
    rescue_info: Optional[RescueOption] = None
    previous_combo: Tuple[Card, ...] = ()
    played_combo: Tuple[Card, ...] = ()
    inserted_card: Optional[Card] = None
    discarded_card: Optional[Card] = None

    def __repr__(self) -> str:
        if self.success:
            return f"ActionResult(success=True, step={self.state.step_count})"
        return f"ActionResult(success=False, error={self.error!r})"


def _rejected(state: GameState, player_id: str, action: str, error: IllegalMoveError) -> ActionResult:
    logger.debug("Rejected %s from %s: %s", action, player_id, error)
    return ActionResult(success=False, state=state, error=str(error))


def create_game(
    players: Sequence[Player],
    previous_winner_id: Optional[str] = None,
    config: Optional[GameConfig] = None,
    seed: Optional[int] = None,
) -> GameState:
    """发牌开始新对局，上一局赢家仍在座时先手，否则随机"""
    return GameState.initial(players, previous_winner_id, config=config, seed=seed)


def public_view(state: GameState, viewer_id: str) -> PublicState:
    """对某个观察者投影状态"""
    return state.public_view(viewer_id)


def play(
    state: GameState,
    player_id: str,
    card_indices: Sequence[int],
    split_resolutions: Optional[Dict[int, int]] = None,
) -> ActionResult:
    """出牌"""
    try:
        new_state = state.with_play(player_id, card_indices, split_resolutions)
    except IllegalMoveError as e:
        return _rejected(state, player_id, "play", e)

    return ActionResult(
        success=True,
        state=new_state,
        previous_combo=state.table,
        played_combo=new_state.table if new_state.table_owner == player_id else (),
    )


def draw(state: GameState, player_id: str) -> ActionResult:
    """摸牌 (摸到的牌进入暂存位)"""
    try:
        new_state = state.with_draw(player_id)
    except IllegalMoveError as e:
        return _rejected(state, player_id, "draw", e)

    rescue = new_state.rescue_option()
    return ActionResult(
        success=True,
        state=new_state,
        drawn_card=new_state.drawn_card,
        rescue_possible=rescue is not None,
        rescue_info=rescue,
    )


def rescue_play(
    state: GameState,
    player_id: str,
    combo_indices: Sequence[int],
    insert_position: Optional[int] = None,
    split_resolutions: Optional[Dict[int, int]] = None,
) -> ActionResult:
    """救援出牌 (RINGO): 摸到的牌与手牌一起打出"""
    try:
        new_state = state.with_rescue_play(player_id, combo_indices, insert_position, split_resolutions)
    except IllegalMoveError as e:
        return _rejected(state, player_id, "rescue", e)

    return ActionResult(
        success=True,
        state=new_state,
        previous_combo=state.table,
        played_combo=new_state.table if new_state.table_owner == player_id else (),
    )


def insert_drawn_card(state: GameState, player_id: str, position: int) -> ActionResult:
    """将摸到的牌插入手牌"""
    try:
        new_state = state.with_drawn_card_inserted(player_id, position)
    except IllegalMoveError as e:
        return _rejected(state, player_id, "insert", e)

    return ActionResult(success=True, state=new_state, inserted_card=state.drawn_card)


def discard_drawn_card(state: GameState, player_id: str) -> ActionResult:
    """弃掉摸到的牌"""
    try:
        new_state = state.with_drawn_card_discarded(player_id)
    except IllegalMoveError as e:
        return _rejected(state, player_id, "discard", e)

    return ActionResult(success=True, state=new_state, discarded_card=state.drawn_card)


def resolve_capture(
    state: GameState,
    player_id: str,
    action: str,
    insert_position: Optional[int] = None,
    card_id: Optional[int] = None,
) -> ActionResult:
    """处理收回的牌 (action: "discard_all" 或 "insert_one")"""
    try:
        capture_action = CaptureAction(action)
    except ValueError:
        return _rejected(state, player_id, "capture", IllegalMoveError("Invalid capture action"))

    try:
        new_state = state.with_capture_resolved(player_id, capture_action, insert_position, card_id)
    except IllegalMoveError as e:
        return _rejected(state, player_id, "capture", e)

    inserted = None
    if capture_action == CaptureAction.INSERT_ONE:
        inserted = next(c for c in state.pending_capture.cards if c.id == card_id)
    return ActionResult(success=True, state=new_state, inserted_card=inserted)


def apply_move(state: GameState, player_id: str, move: Move) -> ActionResult:
    """
    分发一个通用动作到对应的入口

    Args:
        state: 当前状态
        player_id: 玩家
        move: 动作

    Returns:
        ActionResult
    """
    if move.move_type == MoveType.PLAY:
        return play(state, player_id, move.indices, move.resolution_map or None)
    if move.move_type == MoveType.DRAW:
        return draw(state, player_id)
    if move.move_type == MoveType.RESCUE:
        return rescue_play(state, player_id, move.indices, move.position, move.resolution_map or None)
    if move.move_type == MoveType.INSERT_DRAWN:
        return insert_drawn_card(state, player_id, move.position)
    if move.move_type == MoveType.DISCARD_DRAWN:
        return discard_drawn_card(state, player_id)
    if move.move_type == MoveType.CAPTURE_DISCARD_ALL:
        return resolve_capture(state, player_id, CaptureAction.DISCARD_ALL.value)
    if move.move_type == MoveType.CAPTURE_INSERT_ONE:
        return resolve_capture(state, player_id, CaptureAction.INSERT_ONE.value, move.position, move.card_id)
    return _rejected(state, player_id, "move", IllegalMoveError(f"Unknown move type: {move.move_type}"))
