"""
Core Layer - 纯游戏逻辑 (无表现层依赖)

Modules:
    cards: 牌定义与编码
    deck: 牌组构建与洗牌
    player: 玩家与手牌
    tableau: 摸牌堆/弃牌堆/目标牌
    rules: 规则引擎
    engine: 回合状态机
    config: 牌局配置
    errors: 异常定义
"""
from .cards import (
    Card,
    CardState,
    Rank,
    Suit,
    RANKS,
    SUITS,
    NUM_CARD_INDICES,
    card_index,
    index_to_face,
    cards_to_array,
    cards_to_str,
    parse_face,
    find_card,
)

from .deck import (
    Deck,
    DeckDefinition,
    build,
    shuffle,
    load_definition,
)

from .player import (
    Hand,
    Player,
    PlayerKind,
    Strategy,
    first_match,
)

from .tableau import TableauState

from .rules import RuleEngine, HOUSE_RULES

from .engine import (
    Phase,
    EngineEvent,
    GameSession,
    GameEngine,
)

from .config import GameConfig, LayoutConfig, SlotDef

from .errors import (
    BartokError,
    DefinitionError,
    NotStartedError,
    EmptyDeckError,
)

__all__ = [
    # cards
    "Card",
    "CardState",
    "Rank",
    "Suit",
    "RANKS",
    "SUITS",
    "NUM_CARD_INDICES",
    "card_index",
    "index_to_face",
    "cards_to_array",
    "cards_to_str",
    "parse_face",
    "find_card",
    # deck
    "Deck",
    "DeckDefinition",
    "build",
    "shuffle",
    "load_definition",
    # player
    "Hand",
    "Player",
    "PlayerKind",
    "Strategy",
    "first_match",
    # tableau
    "TableauState",
    # rules
    "RuleEngine",
    "HOUSE_RULES",
    # engine
    "Phase",
    "EngineEvent",
    "GameSession",
    "GameEngine",
    # config
    "GameConfig",
    "LayoutConfig",
    "SlotDef",
    # errors
    "BartokError",
    "DefinitionError",
    "NotStartedError",
    "EmptyDeckError",
]
