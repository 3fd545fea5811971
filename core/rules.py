"""
规则引擎 - 出牌合法性判定

基础规则只有一条: 与目标牌同点数或同花色即可出牌。
房规 (house rules) 以谓词形式追加，任一谓词成立即视为合法。
"""
from typing import Callable, Dict, List, Optional, Sequence, Union

from .cards import Card, Rank, Suit
from .errors import DefinitionError


# (card, target) -> bool
PlayPredicate = Callable[[Card, Card], bool]

RED_SUITS = (Suit.DIAMONDS, Suit.HEARTS)


def eights_wild(card: Card, target: Card) -> bool:
    """8 是万能牌"""
    return card.rank == Rank.EIGHT


def match_color(card: Card, target: Card) -> bool:
    """同颜色即可出牌"""
    return (card.suit in RED_SUITS) == (target.suit in RED_SUITS)


# 房规注册表
HOUSE_RULES: Dict[str, PlayPredicate] = {
    "eights_wild": eights_wild,
    "match_color": match_color,
}


class RuleEngine:
    """
    Bartok 规则引擎

    Args:
        house_rules: 房规名称 (见 HOUSE_RULES) 或自定义谓词
    """

    def __init__(self, house_rules: Sequence[Union[str, PlayPredicate]] = ()):
        self.house_rules: List[PlayPredicate] = []
        for rule in house_rules:
            self.add_house_rule(rule)

    def add_house_rule(self, rule: Union[str, PlayPredicate]):
        """追加房规"""
        if isinstance(rule, str):
            if rule not in HOUSE_RULES:
                raise DefinitionError(
                    f"Unknown house rule: {rule!r}. Available: {sorted(HOUSE_RULES)}"
                )
            rule = HOUSE_RULES[rule]
        self.house_rules.append(rule)

    @staticmethod
    def matches_target(card: Card, target: Card) -> bool:
        """同点数或同花色"""
        if card.rank == target.rank:
            return True
        if card.suit == target.suit:
            return True
        return False

    def valid_play(self, card: Card, target: Optional[Card]) -> bool:
        """
        检查出牌是否合法

        Args:
            card: 要打出的牌
            target: 当前目标牌 (None 时任何牌都不合法)

        Returns:
            是否合法
        """
        if target is None:
            return False
        if self.matches_target(card, target):
            return True
        return any(rule(card, target) for rule in self.house_rules)

    def playable_cards(self, hand: Sequence[Card], target: Optional[Card]) -> List[Card]:
        """手牌中所有可出的牌 (保持手牌顺序)"""
        return [card for card in hand if self.valid_play(card, target)]
