"""
Environment Layer - Gymnasium 兼容环境

Modules:
    bartok_env: 主环境类
    observation: 观测空间构建
    reward: 奖励函数
    wrappers: 环境包装器
"""
from .bartok_env import (
    BartokEnv,
    make_env,
)

from .observation import (
    DRAW_ACTION,
    NUM_ACTIONS,
    Observation,
    ObservationBuilder,
    legal_actions,
    legal_mask,
    decode_action,
)

from .reward import (
    RewardType,
    RewardConfig,
    RewardCalculator,
    create_reward_calculator,
)

from .wrappers import (
    FlattenObservationWrapper,
    RecordGameStatistics,
    wrap_env,
)

__all__ = [
    # env
    "BartokEnv",
    "make_env",
    # observation
    "DRAW_ACTION",
    "NUM_ACTIONS",
    "Observation",
    "ObservationBuilder",
    "legal_actions",
    "legal_mask",
    "decode_action",
    # reward
    "RewardType",
    "RewardConfig",
    "RewardCalculator",
    "create_reward_calculator",
    # wrappers
    "FlattenObservationWrapper",
    "RecordGameStatistics",
    "wrap_env",
]
