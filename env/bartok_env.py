"""
Bartok Gymnasium 环境

遵循标准 Gymnasium API；智能体控制一个座位，其余座位由自动玩家同步行动
"""
from typing import Dict, Any, Tuple, Optional, List
import numpy as np
import gymnasium as gym
from gymnasium import spaces

from core.cards import NUM_CARD_INDICES, cards_to_str
from core.config import GameConfig, LayoutConfig
from core.engine import EngineEvent, GameSession
from core.player import Strategy

from .observation import (
    DRAW_ACTION,
    NUM_ACTIONS,
    ObservationBuilder,
    decode_action,
    legal_actions,
    legal_mask,
)
from .reward import RewardCalculator, RewardConfig, RewardType


class BartokEnv(gym.Env):
    """
    Bartok Gymnasium 环境

    动作空间:
        0-51: 打出对应编码的手牌
        52: 摸牌 (本回合已摸过牌时表示放弃)

    API:
    - reset() -> observation, info
    - step(action) -> observation, reward, terminated, truncated, info
    """

    metadata = {
        "render_modes": ["human", "ansi"],
        "name": "Bartok-v0",
    }

    def __init__(
        self,
        render_mode: Optional[str] = None,
        num_players: int = 4,
        agent_seat: int = 0,
        reward_type: str = "sparse",
        num_starting_cards: int = 7,
        house_rules: Tuple[str, ...] = (),
        draw_ends_turn: bool = True,
        max_turns: Optional[int] = 500,
        opponent_strategy: Optional[Strategy] = None,
        seed: Optional[int] = None,
    ):
        """
        Args:
            render_mode: 渲染模式 ("human", "ansi", None)
            num_players: 玩家数
            agent_seat: 智能体座位
            reward_type: 奖励类型 ("sparse", "shaped")
            num_starting_cards: 起手张数
            house_rules: 房规
            draw_ends_turn: 摸牌后是否结束回合
            max_turns: 回合上限 (超过则 truncated)
            opponent_strategy: 对手策略 (默认出第一张合法牌)
            seed: 随机种子
        """
        super().__init__()

        if not 0 <= agent_seat < num_players:
            raise ValueError(f"agent_seat {agent_seat} out of range for {num_players} players")

        self.render_mode = render_mode
        self.num_players = num_players
        self.agent_seat = agent_seat
        self._seed = seed

        self._game_config = dict(
            num_starting_cards=num_starting_cards,
            house_rules=tuple(house_rules),
            draw_ends_turn=draw_ends_turn,
            max_turns=max_turns,
            auto_settle=True,
        )
        self._opponent_strategy = opponent_strategy

        self._obs_builder = ObservationBuilder()
        self._reward_calculator = RewardCalculator(
            RewardConfig(reward_type=RewardType(reward_type))
        )

        self._session: Optional[GameSession] = None
        self._recycles = 0

        self._define_spaces()

    def _define_spaces(self):
        """定义观测和动作空间"""
        self.action_space = spaces.Discrete(NUM_ACTIONS)

        n = self.num_players
        self.observation_space = spaces.Dict({
            "hand": spaces.Box(0, np.inf, shape=(NUM_CARD_INDICES,), dtype=np.float32),
            "target": spaces.Box(0, 1, shape=(NUM_CARD_INDICES,), dtype=np.float32),
            "discard": spaces.Box(0, np.inf, shape=(NUM_CARD_INDICES,), dtype=np.float32),
            "cards_left": spaces.Box(0, 1, shape=(n,), dtype=np.float32),
            "draw_pile_size": spaces.Box(0, 1, shape=(1,), dtype=np.float32),
            "position": spaces.Box(0, 1, shape=(n,), dtype=np.float32),
        })

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        重置环境

        开局后自动玩家会一直行动到轮到智能体 (或游戏结束)

        Returns:
            (observation, info) 元组
        """
        super().reset(seed=seed)

        game_seed = seed if seed is not None else self._seed
        if game_seed is None:
            game_seed = int(self.np_random.integers(2 ** 31))

        strategies = {}
        if self._opponent_strategy is not None:
            strategies = {
                i: self._opponent_strategy
                for i in range(self.num_players) if i != self.agent_seat
            }

        self._session = GameSession(
            config=GameConfig(seed=game_seed, **self._game_config),
            layout=LayoutConfig.default(self.num_players, human_slot=self.agent_seat),
            strategies=strategies,
        )
        self._recycles = 0
        self._session.add_listener(self._on_event)
        self._session.start_game()

        obs = self._build_observation()
        info = self._build_info()

        if self.render_mode == "human":
            self.render()

        return obs, info

    def step(
        self,
        action: int,
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        执行动作

        非法动作给予惩罚并保持状态不变

        Returns:
            (observation, reward, terminated, truncated, info) 元组
        """
        if self._session is None:
            raise RuntimeError("Environment not reset. Call reset() first.")
        if self._session.is_game_over:
            raise RuntimeError("Episode is finished. Call reset() first.")

        action = int(action)
        agent = self._session.players[self.agent_seat]
        prev_hand_size = len(agent.hand)

        if action not in self.get_legal_actions():
            obs = self._build_observation()
            info = self._build_info()
            info["error"] = "Invalid action"
            return obs, self._reward_calculator.config.illegal_penalty, False, False, info

        if action == DRAW_ACTION:
            if self._session.can_draw_this_turn:
                self._session.submit_draw()
            else:
                self._session.submit_pass()
        else:
            self._session.submit_play(decode_action(agent, action))

        obs = self._build_observation()
        reward = self._reward_calculator.compute(
            self._session, self.agent_seat, prev_hand_size
        )
        truncated = self._session.truncated
        terminated = self._session.is_game_over and not truncated
        info = self._build_info()

        if self.render_mode == "human":
            self.render()

        return obs, reward, terminated, truncated, info

    def _on_event(self, event: EngineEvent, payload: Dict[str, Any]):
        if event == EngineEvent.PILE_RECYCLED:
            self._recycles += 1

    def _build_observation(self) -> Dict[str, np.ndarray]:
        obs = self._obs_builder.build(self._session, self.agent_seat)
        return obs.to_dict()

    def _build_info(self) -> Dict[str, Any]:
        """构建 info 字典"""
        actions = self.get_legal_actions()
        info = {
            "current_player": self._session.current_index,
            "phase": self._session.phase.value,
            "legal_actions": actions,
            "legal_action_mask": legal_mask(actions),
            "turn_count": self._session.turn_count,
            "target": self._session.target_card.name if self._session.target_card else None,
            "recycles": self._recycles,
        }

        if self._session.is_game_over:
            winner = self._session.winner
            info["winner"] = self._session.players.index(winner) if winner else None
            info["truncated"] = self._session.truncated

        return info

    def render(self) -> Optional[str]:
        """渲染环境"""
        if self.render_mode == "ansi" or self.render_mode == "human":
            return self._render_text()
        return None

    def _render_text(self) -> str:
        """文本渲染"""
        session = self._session
        lines = []
        lines.append("=" * 50)
        lines.append(f"Phase: {session.phase.value}")
        current = session.current_player
        lines.append(f"Current Player: {current.name if current else None}")
        target = session.target_card
        lines.append(f"Target: {target.name if target else None}")
        lines.append(
            f"Draw pile: {len(session.tableau.draw_pile)}  "
            f"Discard pile: {len(session.tableau.discard_pile)}"
        )

        for i, player in enumerate(session.players):
            if i == self.agent_seat:
                lines.append(f"{player.name}: {cards_to_str(player.hand)} ({len(player.hand)})")
            else:
                lines.append(f"{player.name}: ({len(player.hand)})")

        if session.is_game_over:
            winner = session.winner
            lines.append(f"Winner: {winner.name if winner else 'none'}")

        lines.append("=" * 50)

        output = "\n".join(lines)
        if self.render_mode == "human":
            print(output)
        return output

    def close(self):
        """关闭环境"""
        pass

    @property
    def session(self) -> Optional[GameSession]:
        """获取当前牌局 (用于调试)"""
        return self._session

    def get_legal_actions(self) -> List[int]:
        """获取智能体当前合法动作"""
        if self._session is None:
            return []
        return legal_actions(self._session, self._session.players[self.agent_seat])

    def sample_action(self) -> int:
        """随机采样一个合法动作"""
        actions = self.get_legal_actions()
        if not actions:
            return DRAW_ACTION
        return actions[self.np_random.integers(len(actions))]


def make_env(
    env_id: str = "Bartok-v0",
    **kwargs
) -> BartokEnv:
    """
    工厂函数：创建环境

    Args:
        env_id: 环境 ID
        **kwargs: 环境参数

    Returns:
        BartokEnv 实例
    """
    return BartokEnv(**kwargs)
