"""
评估器

评估智能体在环境中的表现
"""
from typing import Dict, List, Optional, Callable, Any, Sequence
from dataclasses import dataclass, field
import numpy as np
import logging

from core.cards import Card
from core.engine import GameSession
from core.player import Strategy
from env.observation import DRAW_ACTION, ObservationBuilder, decode_action, legal_actions

from .metrics import RunningStats

logger = logging.getLogger(__name__)


@dataclass
class EvalResult:
    """评估结果"""
    win_rate: float
    avg_reward: float
    avg_length: float
    games_played: int
    truncation_rate: float = 0.0
    extra_stats: Dict[str, float] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"EvalResult(win_rate={self.win_rate:.2%}, "
            f"avg_reward={self.avg_reward:.2f}, "
            f"games={self.games_played})"
        )


class Agent:
    """智能体基类"""

    def __init__(self, name: str = "agent"):
        self.name = name

    def act(self, obs: Dict[str, Any], legal_actions: List[int]) -> int:
        """选择动作"""
        raise NotImplementedError

    def reset(self):
        """重置状态"""
        pass


class RandomAgent(Agent):
    """随机智能体"""

    def __init__(self, name: str = "random", seed: Optional[int] = None):
        super().__init__(name)
        self._rng = np.random.default_rng(seed)

    def act(self, obs: Dict[str, Any], legal_actions: List[int]) -> int:
        if not legal_actions:
            return DRAW_ACTION
        idx = self._rng.integers(len(legal_actions))
        return legal_actions[idx]


class RuleBasedAgent(Agent):
    """规则智能体"""

    def __init__(self, name: str = "rule"):
        super().__init__(name)

    def act(self, obs: Dict[str, Any], legal_actions: List[int]) -> int:
        if not legal_actions:
            return DRAW_ACTION

        # 简单规则: 能出牌就出，不摸牌
        plays = [a for a in legal_actions if a != DRAW_ACTION]
        if plays:
            return plays[0]
        return DRAW_ACTION


def agent_strategy(agent: Agent) -> Strategy:
    """
    将智能体包装为引擎的自动玩家策略

    智能体选择摸牌时返回 None
    """
    builder = ObservationBuilder()

    def strategy(hand: Sequence[Card], session: GameSession) -> Optional[Card]:
        player = session.current_player
        seat = session.current_index
        obs = builder.build(session, seat).to_dict()
        action = agent.act(obs, legal_actions(session, player))
        if action == DRAW_ACTION:
            return None
        return decode_action(player, action)

    return strategy


class Evaluator:
    """
    评估器

    评估智能体在环境中的表现 (对手由环境内的自动玩家扮演)
    """

    def __init__(self, env_fn: Callable):
        self.env_fn = env_fn

    def evaluate(
        self,
        agent: Agent,
        n_games: int = 100,
        verbose: bool = False,
    ) -> EvalResult:
        """
        评估智能体

        Args:
            agent: 待评估智能体
            n_games: 游戏数量
            verbose: 是否输出详情

        Returns:
            评估结果
        """
        env = self.env_fn()

        wins = 0
        truncations = 0
        total_reward = 0.0
        total_length = 0
        length_stats = RunningStats()
        reward_stats = RunningStats()

        for game_idx in range(n_games):
            agent.reset()
            obs, info = env.reset()
            # 起手张数很少时，自动玩家可能在开局阶段就结束牌局
            done = "winner" in info
            episode_reward = 0.0
            episode_length = 0

            while not done:
                action = agent.act(obs, env.get_legal_actions())
                obs, reward, terminated, truncated, info = env.step(action)
                done = terminated or truncated
                episode_reward += reward
                episode_length += 1

            if info.get("truncated"):
                truncations += 1
            elif info.get("winner") == env.agent_seat:
                wins += 1

            total_reward += episode_reward
            total_length += episode_length
            length_stats.push(episode_length)
            reward_stats.push(episode_reward)

            if verbose and (game_idx + 1) % 10 == 0:
                logger.info(f"Game {game_idx + 1}/{n_games}, Win rate: {wins/(game_idx+1):.2%}")

        return EvalResult(
            win_rate=wins / n_games if n_games > 0 else 0.0,
            avg_reward=total_reward / n_games if n_games > 0 else 0.0,
            avg_length=total_length / n_games if n_games > 0 else 0.0,
            games_played=n_games,
            truncation_rate=truncations / n_games if n_games > 0 else 0.0,
            extra_stats={**length_stats.summary("length"), **reward_stats.summary("reward")},
        )
