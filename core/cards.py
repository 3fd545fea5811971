"""
牌的定义与编码

Bartok 使用标准 52 张牌：
- 4 种花色 (梅花、方块、红心、黑桃)
- 每种花色 A(1) - K(13)

牌面 (rank, suit) 不可变；位置状态 (state) 随牌流转而变化。
牌以引用区分身份，自定义牌组中两张牌可以有相同的牌面。
"""
from enum import Enum, IntEnum
from typing import Dict, Iterable, List, Optional
import numpy as np


class Suit(Enum):
    """花色"""
    CLUBS = "C"
    DIAMONDS = "D"
    HEARTS = "H"
    SPADES = "S"

    @property
    def index(self) -> int:
        return SUITS.index(self)


class Rank(IntEnum):
    """牌面值"""
    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13


class CardState(Enum):
    """牌所在位置"""
    IN_DRAW_PILE = "draw_pile"
    IN_HAND = "hand"
    IN_DISCARD = "discard"
    IS_TARGET = "target"
    IN_TRANSIT = "transit"   # 正在移动 (等待表现层回调)


# 花色顺序 (编码用)
SUITS = (Suit.CLUBS, Suit.DIAMONDS, Suit.HEARTS, Suit.SPADES)

RANKS = tuple(Rank)

# 牌面值到显示字符的映射
RANK_TO_STR: Dict[int, str] = {
    1: 'A', 2: '2', 3: '3', 4: '4', 5: '5', 6: '6', 7: '7',
    8: '8', 9: '9', 10: '10', 11: 'J', 12: 'Q', 13: 'K',
}

# 显示字符到牌面值的映射
STR_TO_RANK: Dict[str, int] = {v: k for k, v in RANK_TO_STR.items()}

# 编码维度 (花色优先展开)
NUM_CARD_INDICES = len(SUITS) * len(RANKS)


class Card:
    """
    一张牌

    Attributes:
        rank: 牌面值 (只读)
        suit: 花色 (只读)
        state: 当前位置
        face_up: 是否正面朝上 (表现层使用)
        sort_order: 显示层级 (表现层使用，与逻辑无关)
    """

    __slots__ = ("_rank", "_suit", "state", "face_up", "sort_order")

    def __init__(self, rank: int, suit: Suit, state: CardState = CardState.IN_DRAW_PILE):
        self._rank = Rank(rank)
        self._suit = Suit(suit)
        self.state = state
        self.face_up = False
        self.sort_order = 0

    @property
    def rank(self) -> Rank:
        return self._rank

    @property
    def suit(self) -> Suit:
        return self._suit

    @property
    def index(self) -> int:
        """标准编码索引 (0-51)"""
        return card_index(self._rank, self._suit)

    @property
    def name(self) -> str:
        return f"{RANK_TO_STR[self._rank]}{self._suit.value}"

    def same_face(self, other: "Card") -> bool:
        """牌面是否相同 (不比较身份)"""
        return self._rank == other._rank and self._suit == other._suit

    def __repr__(self) -> str:
        return f"Card({self.name}, {self.state.value})"


def card_index(rank: int, suit: Suit) -> int:
    """(rank, suit) -> 0-51"""
    return Suit(suit).index * len(RANKS) + (int(rank) - 1)


def index_to_face(index: int) -> tuple:
    """0-51 -> (rank, suit)"""
    if not 0 <= index < NUM_CARD_INDICES:
        raise ValueError(f"Card index out of range: {index}")
    suit_idx, rank_offset = divmod(index, len(RANKS))
    return Rank(rank_offset + 1), SUITS[suit_idx]


def cards_to_array(cards: Iterable[Card]) -> np.ndarray:
    """
    将牌列表转换为 52 维计数向量

    自定义牌组可能包含重复牌面，因此使用计数而不是 one-hot

    Args:
        cards: 牌列表

    Returns:
        52 维 numpy 数组
    """
    array = np.zeros(NUM_CARD_INDICES, dtype=np.float32)
    for card in cards:
        array[card.index] += 1
    return array


def cards_to_str(cards: Iterable[Card]) -> str:
    """
    将牌列表转换为可读字符串

    Returns:
        如 "7H 10S KC"
    """
    return ' '.join(card.name for card in cards)


def parse_face(s: str) -> tuple:
    """
    解析牌面字符串

    Args:
        s: 如 "7H", "10S", "KC"

    Returns:
        (rank, suit) 元组
    """
    s = s.strip().upper()
    if len(s) < 2:
        raise ValueError(f"Invalid card string: {s!r}")
    rank_str, suit_str = s[:-1], s[-1]
    if rank_str not in STR_TO_RANK:
        raise ValueError(f"Invalid rank in card string: {s!r}")
    return Rank(STR_TO_RANK[rank_str]), Suit(suit_str)


def find_card(cards: List[Card], rank: int, suit: Suit) -> Optional[Card]:
    """按牌面查找第一张匹配的牌"""
    for card in cards:
        if card.rank == rank and card.suit == suit:
            return card
    return None
