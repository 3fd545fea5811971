"""
奖励函数

支持:
- 终局奖励 (sparse)
- 过程奖励 (shaped): 终局奖励 + 手牌减少的小奖励
"""
from dataclasses import dataclass
from typing import Optional
from enum import Enum

from core.engine import GameSession, Phase


class RewardType(Enum):
    """奖励类型"""
    SPARSE = "sparse"      # 仅终局奖励
    SHAPED = "shaped"      # 过程奖励


@dataclass
class RewardConfig:
    """奖励配置"""
    reward_type: RewardType = RewardType.SPARSE
    win_reward: float = 1.0
    lose_reward: float = -1.0
    draw_reward: float = 0.0        # 达到回合上限
    illegal_penalty: float = -1.0   # 非法动作
    card_reward: float = 0.01       # 每少一张手牌


class RewardCalculator:
    """
    奖励计算器

    根据配置计算不同类型的奖励
    """

    def __init__(self, config: Optional[RewardConfig] = None):
        self.config = config or RewardConfig()

    def compute(
        self,
        session: GameSession,
        seat: int,
        prev_hand_size: Optional[int] = None,
    ) -> float:
        """
        计算奖励

        Args:
            session: 当前牌局
            seat: 计算奖励的玩家座位
            prev_hand_size: 动作前的手牌数 (用于 shaped 奖励)

        Returns:
            奖励值
        """
        reward = self._terminal_reward(session, seat)

        if self.config.reward_type == RewardType.SHAPED and prev_hand_size is not None:
            cards_shed = prev_hand_size - len(session.players[seat].hand)
            reward += cards_shed * self.config.card_reward

        return reward

    def _terminal_reward(self, session: GameSession, seat: int) -> float:
        """胜利: +1, 失败: -1, 其他: 0"""
        if session.phase != Phase.GAME_OVER:
            return 0.0
        if session.winner is None:
            return self.config.draw_reward
        if session.winner is session.players[seat]:
            return self.config.win_reward
        return self.config.lose_reward


def create_reward_calculator(
    reward_type: str = "sparse",
    **kwargs
) -> RewardCalculator:
    """
    工厂函数：创建奖励计算器

    Args:
        reward_type: 奖励类型 ("sparse", "shaped")
        **kwargs: 其他配置参数

    Returns:
        RewardCalculator 实例
    """
    config = RewardConfig(
        reward_type=RewardType(reward_type),
        **kwargs
    )
    return RewardCalculator(config)
