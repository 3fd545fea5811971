"""
玩家与手牌

玩家类型用标记变体表示 (PlayerKind.human() / PlayerKind.automated(strategy))，
由 take_turn 显式分派，而不是通过继承。
"""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterator, List, Optional, Sequence
import logging

from .cards import Card, CardState, SUITS

if TYPE_CHECKING:
    from .engine import GameSession

logger = logging.getLogger(__name__)


# (hand, session) -> 要打出的牌，None 表示摸牌
Strategy = Callable[[Sequence[Card], "GameSession"], Optional[Card]]

# 手牌显示间距
HAND_SORT_SPACING = 4


def first_match(hand: Sequence[Card], session: "GameSession") -> Optional[Card]:
    """打出第一张合法的牌，没有则摸牌"""
    for card in hand:
        if session.valid_play(card):
            return card
    return None


class Hand:
    """
    手牌

    顺序只影响显示；移除按身份匹配
    """

    def __init__(self, cards: Optional[List[Card]] = None):
        self.cards: List[Card] = list(cards) if cards else []

    def add(self, card: Card) -> Card:
        self.cards.append(card)
        return card

    def remove(self, card: Card) -> bool:
        """移除第一张同一身份的牌，不存在时返回 False"""
        for i, c in enumerate(self.cards):
            if c is card:
                del self.cards[i]
                return True
        return False

    def fan(self) -> List[Card]:
        """
        按花色、点数整理显示顺序

        只写入 sort_order，不改变手牌列表本身
        """
        ordered = sorted(self.cards, key=lambda c: (SUITS.index(c.suit), c.rank))
        for i, card in enumerate(ordered):
            card.sort_order = i * HAND_SORT_SPACING
        return ordered

    def __contains__(self, card: Card) -> bool:
        return any(c is card for c in self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __getitem__(self, idx: int) -> Card:
        return self.cards[idx]

    def __repr__(self) -> str:
        return f"Hand({' '.join(c.name for c in self.cards)})"


@dataclass(frozen=True)
class PlayerKind:
    """
    玩家类型

    Attributes:
        tag: "human" 或 "automated"
        strategy: 自动玩家的出牌策略
    """
    tag: str
    strategy: Optional[Strategy] = None

    HUMAN = "human"
    AUTOMATED = "automated"

    @classmethod
    def human(cls) -> 'PlayerKind':
        return cls(tag=cls.HUMAN)

    @classmethod
    def automated(cls, strategy: Strategy = first_match) -> 'PlayerKind':
        return cls(tag=cls.AUTOMATED, strategy=strategy)

    @property
    def is_human(self) -> bool:
        return self.tag == self.HUMAN


@dataclass(eq=False)
class Player:
    """
    玩家

    Attributes:
        player_num: 座位编号 (1..N，整局不变)
        kind: 玩家类型
        hand: 手牌
    """
    player_num: int
    kind: PlayerKind = field(default_factory=PlayerKind.automated)
    hand: Hand = field(default_factory=Hand)

    @property
    def name(self) -> str:
        return f"Player{self.player_num}"

    @property
    def is_human(self) -> bool:
        return self.kind.is_human

    def add_card(self, card: Card) -> Card:
        """加入手牌，返回同一张牌便于链式调用"""
        card.state = CardState.IN_HAND
        card.face_up = self.is_human
        self.hand.add(card)
        self.hand.fan()
        return card

    def remove_card(self, card: Card):
        """移除手牌；不存在时静默忽略"""
        if self.hand.remove(card):
            self.hand.fan()

    def take_turn(self, session: "GameSession"):
        """
        轮到该玩家行动

        人类玩家直接返回，引擎等待外部的出牌/摸牌指令；
        自动玩家同步做出决定
        """
        if self.kind.is_human:
            logger.debug(f"{self.name} (human) to act")
            return

        if self.kind.tag != PlayerKind.AUTOMATED:
            raise ValueError(f"Unknown player kind: {self.kind.tag}")

        card = self.kind.strategy(list(self.hand), session)
        if card is not None and session.submit_play(card):
            return
        if session.can_draw_this_turn:
            session.submit_draw()
        else:
            session.submit_pass()

    def __repr__(self) -> str:
        return f"Player({self.player_num}, {self.kind.tag}, {len(self.hand)} cards)"
