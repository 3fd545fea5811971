"""
Evaluation Layer - 评估框架

Modules:
    evaluator: 评估器和智能体
    arena: 自动对局
    metrics: 评估指标
"""
from .evaluator import (
    EvalResult,
    Agent,
    RandomAgent,
    RuleBasedAgent,
    agent_strategy,
    Evaluator,
)
from .arena import (
    MatchResult,
    TournamentResult,
    Arena,
)
from .metrics import (
    MetricsCollector,
    RunningStats,
)

__all__ = [
    # evaluator
    "EvalResult",
    "Agent",
    "RandomAgent",
    "RuleBasedAgent",
    "agent_strategy",
    "Evaluator",
    # arena
    "MatchResult",
    "TournamentResult",
    "Arena",
    # metrics
    "MetricsCollector",
    "RunningStats",
]
