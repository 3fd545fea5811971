"""
评估指标

定义和计算各种评估指标
"""
from typing import Dict, List, Optional
from collections import defaultdict
from dataclasses import dataclass
import numpy as np

from .arena import MatchResult


class MetricsCollector:
    """
    指标收集器

    收集对局结果并计算指标
    """

    def __init__(self):
        self.games: List[MatchResult] = []
        self._stats: Dict[str, Dict[str, List[float]]] = defaultdict(lambda: defaultdict(list))
        self.length_stats = RunningStats()

    def add_game(self, result: MatchResult):
        """添加对局结果"""
        self.games.append(result)
        self.length_stats.push(result.length)

        for seat, name in enumerate(result.agents):
            self._stats[name]["games"].append(1)
            self._stats[name]["wins"].append(1 if result.winner == name else 0)
            self._stats[name]["lengths"].append(result.length)
            self._stats[name]["seats"].append(seat)

    def compute_metrics(self, player: Optional[str] = None) -> Dict[str, float]:
        """
        计算指标

        Args:
            player: 指定玩家，None 表示全局

        Returns:
            指标字典
        """
        if player is not None:
            stats = self._stats[player]
            n_games = len(stats["games"])

            if n_games == 0:
                return {}

            return {
                "games": n_games,
                "win_rate": float(np.mean(stats["wins"])),
                "avg_length": float(np.mean(stats["lengths"])),
            }

        # 全局统计
        n_games = len(self.games)
        if n_games == 0:
            return {}

        return {
            "total_games": n_games,
            "avg_length": float(np.mean([g.length for g in self.games])),
            "avg_recycles": float(np.mean([g.recycles for g in self.games])),
            "truncation_rate": float(np.mean([1 if g.truncated else 0 for g in self.games])),
            **self.length_stats.summary("length"),
        }

    def reset(self):
        """重置"""
        self.games.clear()
        self._stats.clear()
        self.length_stats = RunningStats()


@dataclass
class RunningStats:
    """
    在线统计 (Welford)

    对局长度、奖励等逐局累加，不保留原始序列
    """
    count: int = 0
    mean: float = 0.0
    m2: float = 0.0
    low: float = float("inf")
    high: float = float("-inf")

    def push(self, x: float):
        self.count += 1
        delta = x - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (x - self.mean)
        self.low = min(self.low, x)
        self.high = max(self.high, x)

    @property
    def variance(self) -> float:
        """样本方差"""
        return self.m2 / (self.count - 1) if self.count > 1 else 0.0

    @property
    def std(self) -> float:
        return float(np.sqrt(self.variance))

    def summary(self, prefix: str) -> Dict[str, float]:
        """
        以 prefix 为前缀的统计字典

        如 summary("length") -> {"length_mean": ..., "length_std": ..., ...}
        """
        if self.count == 0:
            return {}
        return {
            f"{prefix}_mean": self.mean,
            f"{prefix}_std": self.std,
            f"{prefix}_min": self.low,
            f"{prefix}_max": self.high,
        }
