"""
牌组构建与洗牌

牌组由声明式定义生成：
- 网格形式: ranks × suits
- 列表形式: 显式 (rank, suit) 条目，可附带总数校验
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import json
import random

from .cards import Card, CardState, RANKS, SUITS, Rank, Suit, parse_face
from .errors import DefinitionError


@dataclass(frozen=True)
class DeckDefinition:
    """
    牌组定义

    Attributes:
        entries: (rank, suit) 条目，按顺序生成牌
        count: 声明的总张数 (None 表示不校验)
    """
    entries: Tuple[Tuple[Rank, Suit], ...] = ()
    count: Optional[int] = None

    @classmethod
    def standard(cls) -> 'DeckDefinition':
        """标准 52 张牌"""
        return cls.grid(RANKS, SUITS)

    @classmethod
    def grid(cls, ranks: Sequence[int], suits: Sequence[Union[Suit, str]]) -> 'DeckDefinition':
        """ranks × suits 网格定义"""
        try:
            entries = tuple(
                (Rank(rank), Suit(suit))
                for suit in suits
                for rank in ranks
            )
        except ValueError as e:
            raise DefinitionError(f"Invalid deck grid: {e}") from e
        return cls(entries=entries, count=len(entries))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'DeckDefinition':
        """
        从字典创建定义

        支持两种格式:
            {"ranks": [1, ..., 13], "suits": ["C", "D", "H", "S"]}
            {"cards": ["7H", "10S", ...], "count": 2}
        """
        if not isinstance(d, dict):
            raise DefinitionError(f"Deck definition must be a mapping, got {type(d).__name__}")

        if "cards" in d:
            entries = []
            for raw in d["cards"]:
                try:
                    if isinstance(raw, str):
                        entries.append(parse_face(raw))
                    else:
                        rank, suit = raw
                        entries.append((Rank(rank), Suit(suit)))
                except (TypeError, ValueError) as e:
                    raise DefinitionError(f"Invalid card entry {raw!r}: {e}") from e
            return cls(entries=tuple(entries), count=d.get("count"))

        if "ranks" in d and "suits" in d:
            definition = cls.grid(d["ranks"], d["suits"])
            if "count" in d:
                return cls(entries=definition.entries, count=d["count"])
            return definition

        raise DefinitionError("Deck definition needs either 'cards' or 'ranks' and 'suits'")

    def validate(self):
        """校验定义"""
        if not self.entries:
            raise DefinitionError("Deck definition produces zero cards")
        if self.count is not None and self.count != len(self.entries):
            raise DefinitionError(
                f"Deck definition declares {self.count} cards but lists {len(self.entries)}"
            )


def load_definition(path: Union[str, Path]) -> DeckDefinition:
    """从 JSON 文件读取牌组定义"""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DefinitionError(f"Cannot read deck definition {path}: {e}") from e
    return DeckDefinition.from_dict(data)


def build(definition: Optional[DeckDefinition] = None) -> List[Card]:
    """
    根据定义生成牌

    Args:
        definition: 牌组定义 (默认标准 52 张)

    Returns:
        新建的牌列表，全部位于摸牌堆状态
    """
    if definition is None:
        definition = DeckDefinition.standard()
    definition.validate()
    return [Card(rank, suit, CardState.IN_DRAW_PILE) for rank, suit in definition.entries]


def shuffle(cards: List[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """
    原地洗牌 (Fisher-Yates)

    Args:
        cards: 牌列表 (原地修改)
        rng: 随机数生成器，用于固定种子

    Returns:
        同一个列表
    """
    rng = rng or random
    for i in range(len(cards) - 1, 0, -1):
        j = rng.randrange(i + 1)
        cards[i], cards[j] = cards[j], cards[i]
    return cards


@dataclass
class Deck:
    """
    牌组

    构建一次后只允许通过洗牌改变顺序
    """
    definition: DeckDefinition = field(default_factory=DeckDefinition.standard)
    cards: List[Card] = field(default_factory=list)

    def __post_init__(self):
        if not self.cards:
            self.cards = build(self.definition)

    def shuffle(self, rng: Optional[random.Random] = None) -> List[Card]:
        return shuffle(self.cards, rng)

    def __len__(self) -> int:
        return len(self.cards)
