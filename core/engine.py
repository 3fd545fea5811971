"""
回合状态机

阶段流转:
    IDLE -> PRE_TURN -> WAITING_ON_CARD -> POST_TURN -> (PRE_TURN | GAME_OVER)

GAME_OVER 之后只能通过 restart_game() 回到 IDLE。

WAITING_ON_CARD 是唯一的挂起点: 牌在"移动中"时不接受任何新的出牌/摸牌。
表现层在牌到位后调用 card_arrived()；无界面运行时 (auto_settle=True)
引擎同步调用它。
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import random

from .cards import Card, CardState
from .config import GameConfig, LayoutConfig
from .deck import Deck, DeckDefinition
from .errors import DefinitionError, NotStartedError
from .player import Player, PlayerKind, Strategy, first_match
from .rules import RuleEngine
from .tableau import TableauState

logger = logging.getLogger(__name__)


class Phase(Enum):
    """回合阶段"""
    IDLE = "idle"
    PRE_TURN = "pre_turn"
    WAITING_ON_CARD = "waiting_on_card"
    POST_TURN = "post_turn"
    GAME_OVER = "game_over"


class EngineEvent(Enum):
    """引擎 -> 表现层 通知"""
    CARD_DEALT = "card_dealt"
    CARD_DRAWN = "card_drawn"
    CARD_PLAYED = "card_played"
    TARGET_CHANGED = "target_changed"
    PILE_RECYCLED = "pile_recycled"
    TURN_PASSED = "turn_passed"
    GAME_OVER = "game_over"
    RESTART = "restart"


# (event, payload) -> None
Listener = Callable[[EngineEvent, Dict[str, Any]], None]

# (delay, callback) -> None
Scheduler = Callable[[float, Callable[[], None]], None]


class GameSession:
    """
    一局 Bartok 的全部状态与回合状态机

    拥有牌组、牌桌、玩家的生命周期；不存在任何进程级全局状态

    Args:
        config: 牌局配置
        layout: 座位布局
        definition: 牌组定义
        strategies: 座位下标 -> 自动玩家策略
        scheduler: 延迟回调调度器 (默认排队，由宿主调用 run_deferred)
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        layout: Optional[LayoutConfig] = None,
        definition: Optional[DeckDefinition] = None,
        strategies: Optional[Dict[int, Strategy]] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.config = config or GameConfig()
        self.layout = layout or LayoutConfig.default()
        self.layout.validate()
        self.definition = definition or DeckDefinition.standard()
        self.rules = RuleEngine(self.config.house_rules)

        self._strategies = dict(strategies or {})
        self._rng = random.Random(self.config.seed)
        self._scheduler = scheduler or self._queue_deferred
        self._deferred: List[Tuple[float, Callable[[], None]]] = []
        self._listeners: List[Listener] = []

        human_index = self.layout.human_index
        self.anchor_index = human_index if human_index is not None else self.config.anchor_slot
        if not 0 <= self.anchor_index < self.layout.num_players:
            raise DefinitionError(
                f"anchor_slot {self.anchor_index} out of range for {self.layout.num_players} players"
            )

        # 回合驱动循环
        self._driving = False
        self._turn_requested = False

        # 每次重建牌局加一，过期的延迟重开据此失效
        self._generation = 0

        self._reset_state()

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def _reset_state(self):
        """丢弃所有牌局状态，重建牌组与玩家"""
        self._generation += 1
        self._deferred.clear()

        self.deck = Deck(self.definition)
        self.deck.shuffle(self._rng)
        self.tableau = TableauState(
            self.deck.cards,
            rng=self._rng,
            on_recycle=self._on_recycle,
        )
        self.players: List[Player] = self._create_players()
        self.current_player: Optional[Player] = None
        self.phase = Phase.IDLE
        self.winner: Optional[Player] = None
        self.truncated = False
        self.turn_count = 0

        self._dealt = False
        self._has_drawn = False
        # 两个牌堆都空时连续无牌可摸的回合数
        self._empty_passes = 0
        # (card, 目的状态, 动作)
        self._in_flight: Optional[Tuple[Card, CardState, str]] = None
        self._turn_requested = False

    def _create_players(self) -> List[Player]:
        players = []
        for i, slot in enumerate(self.layout.slots):
            if slot.human:
                kind = PlayerKind.human()
            else:
                kind = PlayerKind.automated(self._strategies.get(i, first_match))
            players.append(Player(player_num=slot.player_num, kind=kind))
        return players

    def start_game(self) -> bool:
        """
        发牌并翻开第一张目标牌

        从指定首位玩家的左手边开始轮流发 num_starting_cards 张；
        目标牌到位后，由该玩家左手边的玩家先行动

        Returns:
            是否开始 (已开始过则返回 False)
        """
        if self._dealt:
            logger.warning("start_game() called on a game that is already dealt")
            return False

        n = len(self.players)
        needed = self.config.num_starting_cards * n + 1
        if len(self.deck) < needed:
            raise DefinitionError(
                f"Deck of {len(self.deck)} cards cannot deal "
                f"{self.config.num_starting_cards} to {n} players plus a target"
            )

        for i in range(self.config.num_starting_cards):
            for j in range(n):
                player = self.players[(self.anchor_index + 1 + j) % n]
                card = player.add_card(self.tableau.draw())
                self._emit(EngineEvent.CARD_DEALT, player=player, card=card)

        self._dealt = True
        logger.info(
            f"Dealt {self.config.num_starting_cards} cards to {n} players, "
            f"{len(self.tableau.draw_pile)} left in draw pile"
        )

        # 翻开第一张目标牌
        card = self.tableau.move_to_target(self.tableau.draw())
        self._emit(EngineEvent.TARGET_CHANGED, card=card)
        self._begin_move(card, "reveal")
        return True

    def restart_game(self):
        """清空当前玩家与所有临时状态，回到 IDLE 并通知宿主"""
        logger.info("Restarting game")
        self._reset_state()
        self._emit(EngineEvent.RESTART)

    # ------------------------------------------------------------------
    # 回合流转
    # ------------------------------------------------------------------

    @property
    def current_index(self) -> Optional[int]:
        if self.current_player is None:
            return None
        return self.players.index(self.current_player)

    @property
    def first_turn_index(self) -> int:
        """指定首位玩家左手边的座位"""
        return (self.anchor_index + 1) % len(self.players)

    def pass_turn(self, explicit_next: Optional[int] = None) -> bool:
        """
        轮到下一位玩家

        切换前先检查游戏是否结束；结束则不设置新的当前玩家

        Args:
            explicit_next: 指定的下一位座位下标 (默认顺延一位)

        Returns:
            是否切换成功

        Raises:
            NotStartedError: 尚未发牌
        """
        if not self._dealt:
            raise NotStartedError("pass_turn() called before the game was dealt")

        if self.phase == Phase.GAME_OVER:
            logger.debug("pass_turn() ignored: game is over")
            return False

        n = len(self.players)
        if explicit_next is None:
            idx = self.current_index
            explicit_next = 0 if idx is None else (idx + 1) % n
        elif not 0 <= explicit_next < n:
            raise ValueError(f"Invalid player index: {explicit_next}")

        old_player = self.current_player
        if old_player is not None:
            if self.check_game_over():
                return False

        if self.config.max_turns is not None and self.turn_count >= self.config.max_turns:
            logger.warning(f"Turn limit {self.config.max_turns} reached, stopping game")
            self.truncated = True
            self._end_game(None)
            return False

        self.current_player = self.players[explicit_next]
        self.phase = Phase.PRE_TURN
        self._has_drawn = False
        self.turn_count += 1

        logger.debug(
            f"Turn {self.turn_count}: "
            f"{old_player.name if old_player else None} -> {self.current_player.name}"
        )
        self._emit(EngineEvent.TURN_PASSED, previous=old_player, player=self.current_player)

        self._request_turn()
        return True

    def _request_turn(self):
        """
        让当前玩家行动

        自动玩家的行动会再次触发 pass_turn；嵌套的请求只做标记，
        由最外层循环依次执行，调用栈不随回合数增长
        """
        self._turn_requested = True
        if self._driving:
            return

        self._driving = True
        try:
            while self._turn_requested and self.current_player is not None:
                self._turn_requested = False
                if self.phase != Phase.PRE_TURN:
                    break
                self.current_player.take_turn(self)
        finally:
            self._driving = False

    def check_game_over(self) -> bool:
        """
        检查当前玩家是否出完手牌

        先在需要时回收弃牌堆；结束时安排延迟重开

        Returns:
            游戏是否结束
        """
        if self.phase == Phase.GAME_OVER:
            return True
        if self.current_player is None:
            return False

        self.tableau.recycle_if_needed()

        if len(self.current_player.hand) == 0:
            self._end_game(self.current_player)
            return True
        return False

    def _end_game(self, winner: Optional[Player]):
        self.phase = Phase.GAME_OVER
        self.winner = winner
        if winner is not None:
            logger.info(f"Game over: {winner.name} wins after {self.turn_count} turns")
        self._emit(EngineEvent.GAME_OVER, winner=winner, truncated=self.truncated)

        generation = self._generation

        def restart():
            # 宿主已经手动重开过，这次回调属于上一局
            if generation != self._generation:
                logger.debug("Ignoring restart scheduled by a previous game")
                return
            self.restart_game()

        self._scheduler(self.config.restart_delay, restart)

    # ------------------------------------------------------------------
    # 玩家动作
    # ------------------------------------------------------------------

    def valid_play(self, card: Card) -> bool:
        """与目标牌同点数或同花色 (加上启用的房规)"""
        return self.rules.valid_play(card, self.tableau.target_card)

    @property
    def can_draw_this_turn(self) -> bool:
        return self.phase == Phase.PRE_TURN and not self._has_drawn

    def submit_play(self, card: Card) -> bool:
        """
        当前玩家打出一张牌

        非法出牌直接忽略 (返回 False)，不抛异常

        Returns:
            是否被接受
        """
        if self.phase != Phase.PRE_TURN:
            logger.debug(f"Play of {card.name} rejected: phase is {self.phase.value}")
            return False

        player = self.current_player
        if card not in player.hand:
            logger.debug(f"Play of {card.name} rejected: not in {player.name}'s hand")
            return False

        if not self.valid_play(card):
            logger.debug(
                f"Play of {card.name} rejected: target is {self.tableau.target_card.name}"
            )
            return False

        player.remove_card(card)
        self.tableau.move_to_target(card)
        self._empty_passes = 0
        logger.debug(f"{player.name} plays {card.name}")
        self._emit(EngineEvent.CARD_PLAYED, player=player, card=card)
        self._emit(EngineEvent.TARGET_CHANGED, card=card)

        self._begin_move(card, "play")
        return True

    def submit_draw(self) -> bool:
        """
        当前玩家摸一张牌

        两个牌堆都为空时不摸牌，直接结束该回合

        Returns:
            是否摸到牌
        """
        if not self.can_draw_this_turn:
            logger.debug(f"Draw rejected: phase is {self.phase.value}, drawn={self._has_drawn}")
            return False

        player = self.current_player
        if not self.tableau.can_draw():
            self._pass_empty_handed()
            return False

        card = player.add_card(self.tableau.draw())
        self._has_drawn = True
        self._empty_passes = 0
        logger.debug(f"{player.name} draws {card.name}")
        self._emit(EngineEvent.CARD_DRAWN, player=player, card=card)

        self._begin_move(card, "draw")
        return True

    def submit_pass(self) -> bool:
        """
        摸牌后 (或无牌可摸时) 放弃出牌

        摸牌后放弃只在 draw_ends_turn=False 的规则下有意义
        """
        if self.phase != Phase.PRE_TURN:
            return False
        if not self._has_drawn and self.tableau.can_draw():
            logger.debug("Pass rejected: must draw before passing")
            return False

        if not self._has_drawn:
            self._pass_empty_handed()
            return True

        self.phase = Phase.POST_TURN
        self.pass_turn()
        return True

    def _pass_empty_handed(self):
        """
        两个牌堆都为空，当前玩家不摸牌直接结束回合

        所有玩家依次如此 (没有人能出牌) 时牌局无法继续，以无人获胜结束
        """
        self._empty_passes += 1
        if self._empty_passes >= len(self.players):
            logger.warning(
                f"Stalemate after {self.turn_count} turns: "
                f"no cards to draw and no player can play"
            )
            self.truncated = True
            self._end_game(None)
            return

        logger.warning(f"No cards left to draw, {self.current_player.name} passes")
        self.phase = Phase.POST_TURN
        self.pass_turn()

    def card_clicked(self, card: Card) -> bool:
        """
        表现层输入: 人类玩家点击了一张牌

        点击摸牌堆 = 摸顶上的牌 (不一定是被点击的那张)；点击手牌 = 尝试出牌
        """
        if self.current_player is None or not self.current_player.is_human:
            return False
        if self.phase == Phase.WAITING_ON_CARD:
            return False

        if card.state == CardState.IN_DRAW_PILE:
            return self.submit_draw()
        if card.state == CardState.IN_HAND:
            return self.submit_play(card)
        return False

    # ------------------------------------------------------------------
    # 牌移动完成
    # ------------------------------------------------------------------

    def _begin_move(self, card: Card, action: str):
        if action != "reveal":
            self.phase = Phase.WAITING_ON_CARD
        self._in_flight = (card, card.state, action)
        card.state = CardState.IN_TRANSIT

        if self.config.auto_settle:
            self.card_arrived(card)

    def card_arrived(self, card: Card) -> bool:
        """
        表现层回调: 牌已到达目的地

        Returns:
            是否是正在等待的那张牌
        """
        if self._in_flight is None or self._in_flight[0] is not card:
            logger.debug(f"Ignoring arrival of {card.name}: not in flight")
            return False

        _, destination, action = self._in_flight
        self._in_flight = None
        card.state = destination

        if action == "reveal":
            self.pass_turn(self.first_turn_index)
            return True

        self.phase = Phase.POST_TURN

        if action == "draw" and not self.config.draw_ends_turn:
            # 摸牌后还可以出牌
            self.phase = Phase.PRE_TURN
            self._request_turn()
            return True

        self.pass_turn()
        return True

    @property
    def in_flight(self) -> Optional[Card]:
        return self._in_flight[0] if self._in_flight else None

    # ------------------------------------------------------------------
    # 事件与延迟回调
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: EngineEvent, **payload):
        for listener in list(self._listeners):
            listener(event, payload)

    def _on_recycle(self, count: int):
        self._emit(EngineEvent.PILE_RECYCLED, count=count)

    def _queue_deferred(self, delay: float, callback: Callable[[], None]):
        self._deferred.append((delay, callback))

    @property
    def pending_deferred(self) -> int:
        return len(self._deferred)

    def run_deferred(self) -> int:
        """执行所有排队的延迟回调，返回执行数量"""
        pending, self._deferred = self._deferred, []
        for _, callback in pending:
            callback()
        return len(pending)

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    @property
    def target_card(self) -> Optional[Card]:
        return self.tableau.target_card

    @property
    def started(self) -> bool:
        return self._dealt

    @property
    def is_game_over(self) -> bool:
        return self.phase == Phase.GAME_OVER

    @property
    def human_player(self) -> Optional[Player]:
        for player in self.players:
            if player.is_human:
                return player
        return None

    def count_cards(self) -> int:
        """牌桌 + 所有手牌的总张数 (应恒等于牌组大小)"""
        return self.tableau.total_cards + sum(len(p.hand) for p in self.players)

    def snapshot(self) -> Dict[str, Any]:
        """当前状态摘要"""
        target = self.tableau.target_card
        return {
            "phase": self.phase.value,
            "current_player": self.current_player.player_num if self.current_player else None,
            "target": target.name if target else None,
            "draw_pile": len(self.tableau.draw_pile),
            "discard_pile": len(self.tableau.discard_pile),
            "hands": {p.player_num: len(p.hand) for p in self.players},
            "turn_count": self.turn_count,
            "winner": self.winner.player_num if self.winner else None,
        }


# 兼容名称
GameEngine = GameSession
