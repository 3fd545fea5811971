"""
环境包装器

- FlattenObservationWrapper: 字典观测展平为单一向量
- RecordGameStatistics: 每局结束时在 info["episode"] 中汇总本局数据

回合上限由 BartokEnv(max_turns=...) 负责，这里不再重复截断
"""
from typing import Any, Dict, Tuple
import numpy as np
import gymnasium as gym
from gymnasium import spaces

from .observation import DRAW_ACTION


class FlattenObservationWrapper(gym.ObservationWrapper):
    """
    将字典观测展平为单一向量

    键顺序与 observation_space 一致，用于不支持字典观测的算法
    """

    def __init__(self, env: gym.Env):
        super().__init__(env)
        self.observation_space = spaces.flatten_space(env.observation_space)

    def observation(self, obs: Dict[str, np.ndarray]) -> np.ndarray:
        return spaces.flatten(self.env.observation_space, obs).astype(np.float32)


class RecordGameStatistics(gym.Wrapper):
    """
    记录一局 Bartok 的统计

    info["episode"]:
        r: 累计奖励
        l: 智能体步数
        turns: 牌局总回合数 (含自动玩家)
        plays: 智能体出牌次数
        draws: 智能体摸牌/放弃次数
        illegal: 非法动作次数
        recycles: 弃牌堆回收次数
        hand_left: 结束时智能体手牌数
        winner: 胜者座位 (None 表示无人获胜)
        truncated: 是否因回合上限或僵局结束
    """

    def __init__(self, env: gym.Env):
        super().__init__(env)
        self._clear()

    def _clear(self):
        self._reward = 0.0
        self._steps = 0
        self._plays = 0
        self._draws = 0
        self._illegal = 0

    def reset(self, **kwargs) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        obs, info = self.env.reset(**kwargs)
        self._clear()
        return obs, info

    def step(self, action):
        obs, reward, terminated, truncated, info = self.env.step(action)

        self._reward += reward
        self._steps += 1
        if "error" in info:
            self._illegal += 1
        elif int(action) == DRAW_ACTION:
            self._draws += 1
        else:
            self._plays += 1

        if terminated or truncated:
            info["episode"] = {
                "r": self._reward,
                "l": self._steps,
                "turns": info.get("turn_count", 0),
                "plays": self._plays,
                "draws": self._draws,
                "illegal": self._illegal,
                "recycles": info.get("recycles", 0),
                "hand_left": int(obs["hand"].sum()),
                "winner": info.get("winner"),
                "truncated": bool(truncated),
            }

        return obs, reward, terminated, truncated, info


def wrap_env(
    env: gym.Env,
    flatten_obs: bool = False,
    record_stats: bool = True,
) -> gym.Env:
    """
    应用常用包装器组合

    统计包装器在内层，读取的仍是字典观测
    """
    if record_stats:
        env = RecordGameStatistics(env)

    if flatten_obs:
        env = FlattenObservationWrapper(env)

    return env
