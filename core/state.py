"""
游戏状态定义与回合状态机

使用不可变数据结构，支持:
- 每次被接受的动作产生一个新的一致快照
- 被拒绝的动作不修改任何状态
- 线程安全 (快照可以安全地交给模拟线程)
"""
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple
from enum import Enum
import logging
import random

from .cards import Card, FULL_DECK, shuffle_deck
from .actions import CaptureAction, Combo, Move, RescueOption
from .rules import RuleEngine
from .errors import IllegalMoveError, InconsistencyError

logger = logging.getLogger(__name__)


class GameStatus(Enum):
    """游戏状态"""
    LOBBY = "lobby"
    PLAYING = "playing"
    OVER = "over"


class TurnPhase(Enum):
    """回合阶段"""
    WAITING_FOR_PLAY_OR_DRAW = "WAITING_FOR_PLAY_OR_DRAW"
    PROCESSING_PLAY = "PROCESSING_PLAY"  # 出牌处理中的瞬时阶段，不会出现在快照中
    PROCESSING_DRAW = "PROCESSING_DRAW"
    RINGO_CHECK = "RINGO_CHECK"
    WAITING_FOR_CAPTURE_DECISION = "WAITING_FOR_CAPTURE_DECISION"
    GAME_OVER = "GAME_OVER"


# 摸牌后等待处理摸到的牌的阶段
DRAWN_CARD_PHASES: Tuple[TurnPhase, ...] = (TurnPhase.PROCESSING_DRAW, TurnPhase.RINGO_CHECK)


@dataclass
class GameConfig:
    """
    对局配置

    Attributes:
        hand_size: 每人初始手牌数 (None 表示按人数决定: ≤3 人 10 张，否则 8 张)
        min_players: 最少玩家数
        max_players: 最多玩家数
    """
    hand_size: Optional[int] = None
    min_players: int = 2
    max_players: int = 5

    def resolve_hand_size(self, num_players: int) -> int:
        if self.hand_size is not None:
            return self.hand_size
        return 10 if num_players <= 3 else 8

    @classmethod
    def from_dict(cls, d: dict) -> 'GameConfig':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        return cls(**filtered)


@dataclass(frozen=True)
class Player:
    """
    玩家

    Attributes:
        id: 玩家 id (对局期间稳定)
        name: 显示名
        hand: 手牌 (顺序有意义，相邻性是组合合法性的依据)
        is_bot: 是否为机器人
    """
    id: str
    name: str
    hand: Tuple[Card, ...] = ()
    is_bot: bool = False

    def with_hand(self, hand: Sequence[Card]) -> 'Player':
        return replace(self, hand=tuple(hand))

    @property
    def hand_size(self) -> int:
        return len(self.hand)


@dataclass(frozen=True)
class PendingCapture:
    """被压过的上一组桌面牌，等待新主人处理"""
    owner: str
    cards: Tuple[Card, ...]


@dataclass(frozen=True)
class PublicPlayer:
    """对某个观察者可见的玩家信息"""
    id: str
    name: str
    hand_size: int
    hand: Optional[Tuple[Card, ...]] = None
    is_bot: bool = False


@dataclass(frozen=True)
class PublicState:
    """
    对某个观察者投影后的状态

    自己的手牌完整可见，其他玩家只有手牌数；
    收牌只对其主人可见；牌堆只有数量
    """
    viewer_id: str
    status: GameStatus
    players: Tuple[PublicPlayer, ...]
    draw_pile_size: int
    discard_pile_size: int
    table: Tuple[Card, ...]
    table_owner: Optional[str]
    current_player_index: int
    turn_phase: TurnPhase
    pending_capture: Optional[PendingCapture]
    drawn_card: Optional[Card]
    winner: Optional[str]


@dataclass(frozen=True)
class GameState:
    """
    不可变游戏状态

    Attributes:
        players: 玩家 (按座位顺序)
        draw_pile: 摸牌堆 (末尾为牌顶)
        discard_pile: 弃牌堆
        status: 游戏状态
        table: 桌面上的组合 (已确定点数的牌)
        table_owner: 桌面组合的主人
        current_player_index: 当前行动玩家下标
        turn_phase: 回合阶段
        pending_capture: 等待处理的收牌
        drawn_card: 摸到但尚未处理的牌
        drawn_card_owner: 摸牌的玩家
        winner: 赢家
        step_count: 已接受的动作数
    """
    players: Tuple[Player, ...]
    draw_pile: Tuple[Card, ...]
    discard_pile: Tuple[Card, ...] = ()
    status: GameStatus = GameStatus.PLAYING
    table: Tuple[Card, ...] = ()
    table_owner: Optional[str] = None
    current_player_index: int = 0
    turn_phase: TurnPhase = TurnPhase.WAITING_FOR_PLAY_OR_DRAW
    pending_capture: Optional[PendingCapture] = None
    drawn_card: Optional[Card] = None
    drawn_card_owner: Optional[str] = None
    winner: Optional[str] = None
    step_count: int = 0

    @classmethod
    def initial(
        cls,
        players: Sequence[Player],
        previous_winner_id: Optional[str] = None,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
    ) -> 'GameState':
        """
        创建新对局并发牌

        Args:
            players: 玩家 (手牌会被覆盖)
            previous_winner_id: 上一局赢家，仍在座时先手
            config: 对局配置
            seed: 随机种子

        Returns:
            初始状态
        """
        config = config or GameConfig()
        if not config.min_players <= len(players) <= config.max_players:
            raise ValueError(
                f"Game needs {config.min_players}-{config.max_players} players, got {len(players)}"
            )
        if len({p.id for p in players}) != len(players):
            raise ValueError("Player ids must be unique")

        hand_size = config.resolve_hand_size(len(players))
        if hand_size < 1 or hand_size * len(players) > len(FULL_DECK):
            raise ValueError(f"Invalid hand size: {hand_size}")

        if seed is not None:
            random.seed(seed)

        # 洗牌
        deck = shuffle_deck(FULL_DECK)

        # 轮流发牌
        hands: List[List[Card]] = [[] for _ in players]
        for _ in range(hand_size):
            for hand in hands:
                hand.append(deck.pop())

        seated = tuple(p.with_hand(hand) for p, hand in zip(players, hands))

        # 确定先手
        ids = [p.id for p in seated]
        if previous_winner_id in ids:
            first = ids.index(previous_winner_id)
        else:
            first = random.randrange(len(seated))

        logger.info("New game: %d players, hand size %d, %s starts",
                    len(seated), hand_size, seated[first].id)

        return cls(
            players=seated,
            draw_pile=tuple(deck),
            current_player_index=first,
        )

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    @property
    def is_finished(self) -> bool:
        return self.status == GameStatus.OVER

    @property
    def table_combo(self) -> Optional[Combo]:
        """桌面组合 (张数与点数)"""
        return Combo.of_table(self.table)

    def player_index(self, player_id: str) -> int:
        for i, p in enumerate(self.players):
            if p.id == player_id:
                return i
        raise IllegalMoveError("Player not found")

    def get_player(self, player_id: str) -> Player:
        return self.players[self.player_index(player_id)]

    def get_hand(self, player_id: str) -> Tuple[Card, ...]:
        return self.get_player(player_id).hand

    def next_player_index(self, index: Optional[int] = None) -> int:
        if index is None:
            index = self.current_player_index
        return (index + 1) % len(self.players)

    def all_cards(self) -> List[Card]:
        """所有位置上的牌 (手牌、牌堆、桌面、收牌、摸到的牌)"""
        cards: List[Card] = []
        for p in self.players:
            cards.extend(p.hand)
        cards.extend(self.draw_pile)
        cards.extend(self.discard_pile)
        cards.extend(self.table)
        if self.pending_capture is not None:
            cards.extend(self.pending_capture.cards)
        if self.drawn_card is not None:
            cards.append(self.drawn_card)
        return cards

    def check_conservation(self) -> None:
        """
        检查牌守恒: 所有位置上的牌 id 恰好等于整副牌的 id，无重复无遗漏

        Raises:
            InconsistencyError: 守恒被破坏
        """
        ids = sorted(card.id for card in self.all_cards())
        expected = sorted(card.id for card in FULL_DECK)
        if ids != expected:
            raise InconsistencyError(
                f"Card conservation violated: {len(ids)} cards tracked, {len(expected)} expected"
            )

    def rescue_option(self) -> Optional[RescueOption]:
        """摸到的牌当前的最佳救援方案"""
        if self.drawn_card is None or self.drawn_card_owner is None:
            return None
        hand = self.get_hand(self.drawn_card_owner)
        return RuleEngine.check_insertion_possibility(hand, self.drawn_card, self.table_combo)

    def get_legal_moves(self) -> List[Move]:
        """
        获取当前玩家的合法动作

        Returns:
            动作列表 (游戏结束时为空)
        """
        if self.status != GameStatus.PLAYING:
            return []

        hand = self.current_player.hand

        if self.turn_phase == TurnPhase.WAITING_FOR_PLAY_OR_DRAW:
            moves = [Move.play(c.positions) for c in RuleEngine.find_valid_combos(hand, self.table_combo)]
            if self.draw_pile or self.discard_pile:
                moves.append(Move.draw())
            return moves

        if self.turn_phase in DRAWN_CARD_PHASES:
            moves = [
                Move.rescue(opt.combo_indices, opt.insert_position)
                for opt in RuleEngine.find_rescue_options(hand, self.drawn_card, self.table_combo)
            ]
            moves.extend(Move.insert_drawn(pos) for pos in range(len(hand) + 1))
            moves.append(Move.discard_drawn())
            return moves

        if self.turn_phase == TurnPhase.WAITING_FOR_CAPTURE_DECISION:
            moves = [Move.discard_capture()]
            for card in self.pending_capture.cards:
                moves.extend(Move.insert_capture(card.id, pos) for pos in range(len(hand) + 1))
            return moves

        return []

    def public_view(self, viewer_id: str) -> PublicState:
        """
        投影为某个观察者可见的状态

        Args:
            viewer_id: 观察者 id

        Returns:
            PublicState
        """
        self.player_index(viewer_id)

        players = tuple(
            PublicPlayer(
                id=p.id,
                name=p.name,
                hand_size=len(p.hand),
                hand=p.hand if p.id == viewer_id else None,
                is_bot=p.is_bot,
            )
            for p in self.players
        )

        capture = self.pending_capture
        if capture is not None and capture.owner != viewer_id:
            capture = None

        return PublicState(
            viewer_id=viewer_id,
            status=self.status,
            players=players,
            draw_pile_size=len(self.draw_pile),
            discard_pile_size=len(self.discard_pile),
            table=self.table,
            table_owner=self.table_owner,
            current_player_index=self.current_player_index,
            turn_phase=self.turn_phase,
            pending_capture=capture,
            drawn_card=self.drawn_card if self.drawn_card_owner == viewer_id else None,
            winner=self.winner,
        )

    # ------------------------------------------------------------------
    # 状态转移 (失败时抛出 IllegalMoveError，自身不变)
    # ------------------------------------------------------------------

    def with_play(
        self,
        player_id: str,
        indices: Sequence[int],
        resolutions: Optional[Dict[int, int]] = None,
    ) -> 'GameState':
        """
        出牌后的新状态

        Args:
            player_id: 出牌玩家
            indices: 手牌下标
            resolutions: 指定的分裂牌取值 {card_id: value}

        Returns:
            新状态
        """
        idx = self._require_turn(player_id, (TurnPhase.WAITING_FOR_PLAY_OR_DRAW,))
        hand = self.players[idx].hand
        self._require_indices(indices, len(hand))

        combo = RuleEngine.resolve_combo(hand, indices, resolutions)
        beat = RuleEngine.validate_beat(self.table_combo, combo)
        if not beat.valid:
            raise IllegalMoveError(beat.reason)

        selected = set(combo.positions)
        played = [hand[i] for i in combo.positions]
        remaining = [card for i, card in enumerate(hand) if i not in selected]
        return self._commit_play(idx, remaining, played, combo)

    def with_draw(self, player_id: str) -> 'GameState':
        """
        摸牌后的新状态

        摸牌堆为空时先将弃牌堆洗入摸牌堆；两者都为空时失败。
        摸到的牌暂存在 drawn_card，若能构成救援出牌则进入 RINGO_CHECK。
        """
        idx = self._require_turn(player_id, (TurnPhase.WAITING_FOR_PLAY_OR_DRAW,))

        draw_pile = self.draw_pile
        discard_pile = self.discard_pile
        if not draw_pile and discard_pile:
            logger.debug("Recycling %d discarded cards into the draw pile", len(discard_pile))
            draw_pile = tuple(shuffle_deck(discard_pile))
            discard_pile = ()

        if not draw_pile:
            raise IllegalMoveError("No cards to draw")

        drawn = draw_pile[-1]
        hand = self.players[idx].hand
        rescue = RuleEngine.check_insertion_possibility(hand, drawn, self.table_combo)

        return replace(
            self,
            draw_pile=draw_pile[:-1],
            discard_pile=discard_pile,
            drawn_card=drawn,
            drawn_card_owner=player_id,
            turn_phase=TurnPhase.RINGO_CHECK if rescue is not None else TurnPhase.PROCESSING_DRAW,
            step_count=self.step_count + 1,
        )

    def with_rescue_play(
        self,
        player_id: str,
        combo_indices: Sequence[int],
        insert_position: Optional[int] = None,
        resolutions: Optional[Dict[int, int]] = None,
    ) -> 'GameState':
        """
        救援出牌: 摸到的牌与手牌一起作为一个组合打出

        Args:
            player_id: 玩家
            combo_indices: 参与组合的原手牌下标 (不含摸到的牌)
            insert_position: 摸到的牌虚拟插入的位置，默认紧跟在所选牌之后
            resolutions: 指定的分裂牌取值

        Returns:
            新状态
        """
        idx = self._require_drawn_card(player_id)
        hand = self.players[idx].hand
        if combo_indices:
            self._require_indices(combo_indices, len(hand))

        if insert_position is None:
            insert_position = max(combo_indices) + 1 if combo_indices else 0
        if not isinstance(insert_position, int) or not 0 <= insert_position <= len(hand):
            raise IllegalMoveError("Invalid insert position")

        virtual = list(hand[:insert_position]) + [self.drawn_card] + list(hand[insert_position:])
        positions = [i if i < insert_position else i + 1 for i in combo_indices]
        positions.append(insert_position)

        combo = RuleEngine.resolve_combo(virtual, positions, resolutions)
        beat = RuleEngine.validate_beat(self.table_combo, combo)
        if not beat.valid:
            raise IllegalMoveError(beat.reason)

        selected = set(combo.positions)
        played = [virtual[i] for i in combo.positions]
        remaining = [card for i, card in enumerate(virtual) if i not in selected]
        return self._commit_play(idx, remaining, played, combo)

    def with_drawn_card_inserted(self, player_id: str, position: int) -> 'GameState':
        """将摸到的牌插入手牌指定位置，回合结束"""
        idx = self._require_drawn_card(player_id)
        hand = list(self.players[idx].hand)
        if not isinstance(position, int) or not 0 <= position <= len(hand):
            raise IllegalMoveError("Invalid insert position")

        hand.insert(position, self.drawn_card)
        state = replace(
            self,
            players=self._replace_hand(idx, hand),
            drawn_card=None,
            drawn_card_owner=None,
            step_count=self.step_count + 1,
        )
        return state._advance_turn()._check_win()

    def with_drawn_card_discarded(self, player_id: str) -> 'GameState':
        """弃掉摸到的牌，回合结束"""
        self._require_drawn_card(player_id)
        state = replace(
            self,
            discard_pile=self.discard_pile + (self.drawn_card,),
            drawn_card=None,
            drawn_card_owner=None,
            step_count=self.step_count + 1,
        )
        return state._advance_turn()._check_win()

    def with_capture_resolved(
        self,
        player_id: str,
        action: CaptureAction,
        insert_position: Optional[int] = None,
        card_id: Optional[int] = None,
    ) -> 'GameState':
        """
        处理收回的牌

        Args:
            player_id: 收牌玩家
            action: DISCARD_ALL (全部弃掉) 或 INSERT_ONE (插入一张)
            insert_position: 插入位置 (None 表示放在末尾)
            card_id: 要插入的牌 id

        Returns:
            新状态 (所有收牌处理完后回合推进)
        """
        capture = self.pending_capture
        if capture is None or capture.owner != player_id:
            raise IllegalMoveError("No pending capture for player")
        if self.turn_phase != TurnPhase.WAITING_FOR_CAPTURE_DECISION:
            raise IllegalMoveError("Not waiting for capture decision")
        idx = self.player_index(player_id)

        hand = list(self.players[idx].hand)
        discard_pile = self.discard_pile
        remaining = list(capture.cards)

        if action == CaptureAction.DISCARD_ALL:
            discard_pile = discard_pile + tuple(remaining)
            remaining = []
        elif action == CaptureAction.INSERT_ONE:
            pos = next((i for i, c in enumerate(remaining) if c.id == card_id), None)
            if pos is None:
                raise IllegalMoveError("Card not found in capture")
            if insert_position is None:
                insert_position = len(hand)
            if not isinstance(insert_position, int) or not 0 <= insert_position <= len(hand):
                raise IllegalMoveError("Invalid insert position")
            hand.insert(insert_position, remaining.pop(pos))
        else:
            raise IllegalMoveError("Invalid capture action")

        state = replace(
            self,
            players=self._replace_hand(idx, hand),
            discard_pile=discard_pile,
            pending_capture=PendingCapture(player_id, tuple(remaining)) if remaining else None,
            step_count=self.step_count + 1,
        )
        if not remaining:
            state = state._advance_turn()
        return state._check_win()

    # ------------------------------------------------------------------
    # 内部
    # ------------------------------------------------------------------

    def _require_playing(self) -> None:
        if self.status != GameStatus.PLAYING:
            raise IllegalMoveError("Game is not in progress")

    def _require_turn(self, player_id: str, phases: Tuple[TurnPhase, ...]) -> int:
        self._require_playing()
        idx = self.player_index(player_id)
        if idx != self.current_player_index:
            raise IllegalMoveError("Not your turn")
        if self.turn_phase not in phases:
            raise IllegalMoveError("Invalid turn phase")
        return idx

    def _require_drawn_card(self, player_id: str) -> int:
        idx = self._require_turn(player_id, DRAWN_CARD_PHASES)
        if self.drawn_card is None or self.drawn_card_owner != player_id:
            raise IllegalMoveError("No drawn card available")
        return idx

    @staticmethod
    def _require_indices(indices: Sequence[int], hand_size: int) -> None:
        if not indices:
            raise IllegalMoveError("Must play at least one card")
        if len(set(indices)) != len(indices):
            raise IllegalMoveError("Invalid card indices")
        for i in indices:
            if not isinstance(i, int) or not 0 <= i < hand_size:
                raise IllegalMoveError("Invalid card indices")

    def _replace_hand(self, idx: int, hand: Sequence[Card]) -> Tuple[Player, ...]:
        return tuple(
            p.with_hand(hand) if i == idx else p
            for i, p in enumerate(self.players)
        )

    def _commit_play(
        self,
        idx: int,
        remaining: Sequence[Card],
        played: Sequence[Card],
        combo: Combo,
    ) -> 'GameState':
        """出牌生效: 新组合上桌，上一组桌面牌成为收牌"""
        player_id = self.players[idx].id
        previous = tuple(card.unresolved() for card in self.table)
        table = tuple(card.with_resolution(combo.value) for card in played)

        state = replace(
            self,
            players=self._replace_hand(idx, remaining),
            table=table,
            table_owner=player_id,
            drawn_card=None,
            drawn_card_owner=None,
            turn_phase=TurnPhase.PROCESSING_PLAY,
            step_count=self.step_count + 1,
        )

        if previous:
            state = replace(
                state,
                pending_capture=PendingCapture(player_id, previous),
                turn_phase=TurnPhase.WAITING_FOR_CAPTURE_DECISION,
            )
        else:
            state = state._advance_turn()

        return state._check_win()

    def _advance_turn(self) -> 'GameState':
        """轮到下一位玩家；若其为桌面组合的主人则收桌 (pile closing)"""
        next_idx = self.next_player_index()
        state = replace(
            self,
            current_player_index=next_idx,
            turn_phase=TurnPhase.WAITING_FOR_PLAY_OR_DRAW,
        )

        if state.table and state.table_owner == state.players[next_idx].id:
            logger.debug("Pile closes: %d cards of %s go to discard", len(state.table), state.table_owner)
            state = replace(
                state,
                discard_pile=state.discard_pile + tuple(card.unresolved() for card in state.table),
                table=(),
                table_owner=None,
            )

        return state

    def _check_win(self) -> 'GameState':
        """任何玩家手牌为空即结束，优先于未完成的收牌"""
        if self.status != GameStatus.PLAYING:
            return self

        for p in self.players:
            if not p.hand:
                logger.info("Game over: %s wins after %d steps", p.id, self.step_count)
                discard_pile = self.discard_pile
                if self.pending_capture is not None:
                    discard_pile = discard_pile + self.pending_capture.cards
                if self.drawn_card is not None:
                    discard_pile = discard_pile + (self.drawn_card,)
                return replace(
                    self,
                    status=GameStatus.OVER,
                    turn_phase=TurnPhase.GAME_OVER,
                    winner=p.id,
                    discard_pile=discard_pile,
                    pending_capture=None,
                    drawn_card=None,
                    drawn_card_owner=None,
                )

        return self
