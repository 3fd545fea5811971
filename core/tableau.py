"""
牌桌状态: 摸牌堆、弃牌堆、目标牌

顺序约定:
- 摸牌堆 index 0 是下一张要摸的牌
- 更换目标牌时，旧目标牌先进入弃牌堆，再放置新目标牌
"""
from typing import Callable, List, Optional
import logging
import random

from .cards import Card, CardState
from .deck import shuffle
from .errors import EmptyDeckError

logger = logging.getLogger(__name__)


# 摸牌堆/弃牌堆显示层级间距
SORT_SPACING = 4


class TableauState:
    """
    牌桌状态

    Attributes:
        draw_pile: 摸牌堆 (index 0 = 顶)
        discard_pile: 弃牌堆 (顺序无意义)
        target_card: 当前目标牌
    """

    def __init__(
        self,
        draw_pile: Optional[List[Card]] = None,
        rng: Optional[random.Random] = None,
        on_recycle: Optional[Callable[[int], None]] = None,
    ):
        """
        Args:
            draw_pile: 初始摸牌堆 (已洗好)
            rng: 回收洗牌用的随机数生成器
            on_recycle: 回收后回调，参数为回收的张数
        """
        self.draw_pile: List[Card] = list(draw_pile) if draw_pile else []
        self.discard_pile: List[Card] = []
        self.target_card: Optional[Card] = None
        self._rng = rng
        self._on_recycle = on_recycle
        self.arrange_draw_pile()

    def arrange_draw_pile(self):
        """所有摸牌堆的牌背面朝上，按 index 从前到后排列"""
        for i, card in enumerate(self.draw_pile):
            card.face_up = False
            card.sort_order = -i * SORT_SPACING
            card.state = CardState.IN_DRAW_PILE

    def can_draw(self) -> bool:
        return bool(self.draw_pile) or bool(self.discard_pile)

    def recycle_if_needed(self) -> bool:
        """
        摸牌堆为空时，把弃牌堆洗回摸牌堆

        Returns:
            是否发生了回收
        """
        if self.draw_pile or not self.discard_pile:
            return False

        cards = self.discard_pile
        self.discard_pile = []
        shuffle(cards, self._rng)
        self.draw_pile = cards
        self.arrange_draw_pile()

        logger.info(f"Recycled {len(cards)} cards from discard pile")
        if self._on_recycle is not None:
            self._on_recycle(len(cards))
        return True

    def draw(self) -> Card:
        """
        摸一张牌

        摸牌堆为空时先回收弃牌堆，再取 index 0

        Raises:
            EmptyDeckError: 两个牌堆都为空
        """
        if not self.draw_pile:
            self.recycle_if_needed()
        if not self.draw_pile:
            raise EmptyDeckError("Both draw pile and discard pile are empty")
        return self.draw_pile.pop(0)

    def move_to_target(self, card: Card) -> Card:
        """
        设置新目标牌

        旧目标牌先进入弃牌堆，任何时刻最多一张目标牌
        """
        if self.target_card is not None:
            self.move_to_discard(self.target_card)

        card.face_up = True
        card.state = CardState.IS_TARGET
        self.target_card = card
        return card

    def move_to_discard(self, card: Card) -> Card:
        """放入弃牌堆"""
        if card is self.target_card:
            self.target_card = None
        card.state = CardState.IN_DISCARD
        card.face_up = True
        self.discard_pile.append(card)
        card.sort_order = len(self.discard_pile) * SORT_SPACING
        return card

    @property
    def total_cards(self) -> int:
        return len(self.draw_pile) + len(self.discard_pile) + (1 if self.target_card else 0)

    def __repr__(self) -> str:
        target = self.target_card.name if self.target_card else None
        return (
            f"TableauState(draw={len(self.draw_pile)}, "
            f"discard={len(self.discard_pile)}, target={target})"
        )
