"""
观察空间编码

将牌局状态转换为 numpy 特征表示
"""
from dataclasses import dataclass
from typing import Dict, List, Optional
import numpy as np

from core.cards import NUM_CARD_INDICES, Card, cards_to_array, index_to_face
from core.engine import GameSession, Phase
from core.player import Player


# 动作编码: 0-51 打出对应编码的牌，52 摸牌 (已摸过则为放弃)
DRAW_ACTION = NUM_CARD_INDICES
NUM_ACTIONS = NUM_CARD_INDICES + 1


@dataclass
class Observation:
    """
    结构化观测

    Attributes:
        hand: 自己的手牌 (52,)
        target: 目标牌 (52,) one-hot
        discard: 弃牌堆 (52,)
        cards_left: 各玩家剩余牌数 (N,)，按牌组大小归一化
        draw_pile_size: 摸牌堆张数 (1,)，按牌组大小归一化
        position: 视角玩家座位 (N,) one-hot
        legal_actions: 合法动作索引
        phase: 阶段
    """
    hand: np.ndarray
    target: np.ndarray
    discard: np.ndarray
    cards_left: np.ndarray
    draw_pile_size: np.ndarray
    position: np.ndarray
    legal_actions: List[int]
    phase: str

    def to_dict(self) -> Dict[str, np.ndarray]:
        """转换为字典格式"""
        return {
            "hand": self.hand,
            "target": self.target,
            "discard": self.discard,
            "cards_left": self.cards_left,
            "draw_pile_size": self.draw_pile_size,
            "position": self.position,
        }

    def to_flat_array(self) -> np.ndarray:
        """展平为单一向量"""
        return np.concatenate([
            self.hand,
            self.target,
            self.discard,
            self.cards_left,
            self.draw_pile_size,
            self.position,
        ])


class ObservationBuilder:
    """
    观测构建器

    负责将 GameSession 转换为 Observation
    """

    def build(self, session: GameSession, seat: Optional[int] = None) -> Observation:
        """
        从牌局构建观测

        Args:
            session: 牌局
            seat: 视角玩家座位 (默认为当前玩家)

        Returns:
            Observation 对象
        """
        if seat is None:
            seat = session.current_index or 0
        player = session.players[seat]
        n = len(session.players)
        deck_size = max(len(session.deck), 1)

        target = np.zeros(NUM_CARD_INDICES, dtype=np.float32)
        if session.target_card is not None:
            target[session.target_card.index] = 1

        cards_left = np.array(
            [len(p.hand) / deck_size for p in session.players],
            dtype=np.float32,
        )

        position = np.zeros(n, dtype=np.float32)
        position[seat] = 1

        return Observation(
            hand=cards_to_array(player.hand),
            target=target,
            discard=cards_to_array(session.tableau.discard_pile),
            cards_left=cards_left,
            draw_pile_size=np.array(
                [len(session.tableau.draw_pile) / deck_size], dtype=np.float32
            ),
            position=position,
            legal_actions=legal_actions(session, player),
            phase=session.phase.value,
        )


def legal_actions(session: GameSession, player: Player) -> List[int]:
    """
    玩家当前的合法动作

    不是该玩家的回合或不在 PRE_TURN 阶段时为空
    """
    if session.phase != Phase.PRE_TURN or session.current_player is not player:
        return []

    actions = sorted({card.index for card in player.hand if session.valid_play(card)})
    actions.append(DRAW_ACTION)
    return actions


def legal_mask(actions: List[int]) -> np.ndarray:
    """合法动作掩码 (NUM_ACTIONS,)"""
    mask = np.zeros(NUM_ACTIONS, dtype=np.float32)
    for a in actions:
        mask[a] = 1
    return mask


def decode_action(player: Player, action: int) -> Optional[Card]:
    """
    将动作索引解码为手牌中的一张牌

    Returns:
        对应的手牌；摸牌动作或手中没有该牌时为 None
    """
    if action == DRAW_ACTION:
        return None
    rank, suit = index_to_face(action)
    for card in player.hand:
        if card.rank == rank and card.suit == suit:
            return card
    return None
