"""
游戏配置

定义牌局参数与座位布局
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import DefinitionError


@dataclass
class GameConfig:
    """
    牌局配置

    Attributes:
        num_starting_cards: 每人起手张数
        anchor_slot: 布局中没有人类时，作为"指定首位玩家"的座位下标
        restart_delay: 游戏结束后延迟重开的秒数 (交给调度器)
        seed: 随机种子
        auto_settle: 是否同步完成牌的移动 (无界面时为 True)
        draw_ends_turn: 摸牌后是否立即结束回合
        house_rules: 启用的房规名称
        max_turns: 回合上限 (None 表示不限)
    """
    num_starting_cards: int = 7
    anchor_slot: int = 0
    restart_delay: float = 1.0
    seed: Optional[int] = None
    auto_settle: bool = True
    draw_ends_turn: bool = True
    house_rules: Tuple[str, ...] = ()
    max_turns: Optional[int] = None

    def __post_init__(self):
        if self.num_starting_cards < 0:
            raise DefinitionError(f"num_starting_cards must be >= 0: {self.num_starting_cards}")
        if self.restart_delay < 0:
            raise DefinitionError(f"restart_delay must be >= 0: {self.restart_delay}")
        self.house_rules = tuple(self.house_rules)

    @classmethod
    def from_dict(cls, d: dict) -> 'GameConfig':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        return cls(**filtered)


@dataclass(frozen=True)
class SlotDef:
    """
    座位定义

    表现层的手牌锚点等信息放在 extra 中，引擎只关心编号和是否为人类
    """
    player_num: int
    human: bool = False
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass
class LayoutConfig:
    """
    座位布局

    Attributes:
        slots: 座位列表，顺序即出牌顺序
    """
    slots: List[SlotDef] = field(default_factory=list)

    MIN_PLAYERS = 2

    @classmethod
    def default(cls, num_players: int = 4, human_slot: Optional[int] = 0) -> 'LayoutConfig':
        """num_players 个座位，human_slot 为人类 (None 表示全部自动)"""
        slots = [
            SlotDef(player_num=i + 1, human=(human_slot is not None and i == human_slot))
            for i in range(num_players)
        ]
        layout = cls(slots=slots)
        layout.validate()
        return layout

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'LayoutConfig':
        """
        从字典创建布局

        格式: {"slots": [{"player": 1, "human": true, ...}, ...]}
        """
        raw_slots = d.get("slots") if isinstance(d, dict) else None
        if not isinstance(raw_slots, list):
            raise DefinitionError("Layout definition needs a 'slots' list")

        slots = []
        for i, raw in enumerate(raw_slots):
            if not isinstance(raw, dict):
                raise DefinitionError(f"Slot {i} must be a mapping: {raw!r}")
            extra = {k: v for k, v in raw.items() if k not in ("player", "human")}
            slots.append(SlotDef(
                player_num=int(raw.get("player", i + 1)),
                human=bool(raw.get("human", False)),
                extra=extra,
            ))

        layout = cls(slots=slots)
        layout.validate()
        return layout

    def validate(self):
        if len(self.slots) < self.MIN_PLAYERS:
            raise DefinitionError(
                f"Layout needs at least {self.MIN_PLAYERS} player slots, got {len(self.slots)}"
            )
        nums = [slot.player_num for slot in self.slots]
        if len(set(nums)) != len(nums):
            raise DefinitionError(f"Duplicate player numbers in layout: {nums}")

    @property
    def num_players(self) -> int:
        return len(self.slots)

    @property
    def human_index(self) -> Optional[int]:
        """第一个人类座位"""
        for i, slot in enumerate(self.slots):
            if slot.human:
                return i
        return None
