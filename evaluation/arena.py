"""
对战竞技场

组织自动玩家之间的对局 (直接驱动引擎，不经过 Gymnasium 环境)
"""
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field, replace
from collections import defaultdict
import logging

from core.config import GameConfig, LayoutConfig
from core.engine import EngineEvent, GameSession
from core.player import Strategy

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """对局结果"""
    agents: Tuple[str, ...]      # 按座位顺序
    winner: Optional[str]        # None 表示达到回合上限
    length: int                  # 回合数
    recycles: int                # 弃牌堆回收次数
    truncated: bool


@dataclass
class TournamentResult:
    """多局统计结果"""
    standings: Dict[str, Dict[str, float]]
    total_games: int
    matches: List[MatchResult] = field(default_factory=list)

    def get_ranking(self) -> List[Tuple[str, float]]:
        """获取排名"""
        return sorted(
            [(name, stats.get("win_rate", 0.0)) for name, stats in self.standings.items()],
            key=lambda x: x[1],
            reverse=True,
        )

    def __repr__(self) -> str:
        ranking = self.get_ranking()
        lines = [f"Tournament Results ({self.total_games} games):"]
        for i, (name, win_rate) in enumerate(ranking):
            lines.append(f"  {i+1}. {name}: {win_rate:.2%}")
        return "\n".join(lines)


class Arena:
    """
    对战竞技场

    所有座位都是自动玩家，一次 start_game() 同步跑完整局
    """

    def __init__(self, config: Optional[GameConfig] = None):
        self.config = config or GameConfig(max_turns=1000)

    def play_game(
        self,
        agents: List[Tuple[str, Strategy]],
        seed: Optional[int] = None,
    ) -> MatchResult:
        """
        进行一局

        Args:
            agents: (名称, 策略) 列表，按座位顺序
            seed: 随机种子

        Returns:
            对局结果
        """
        config = replace(self.config, seed=seed, auto_settle=True)
        session = GameSession(
            config=config,
            layout=LayoutConfig.default(len(agents), human_slot=None),
            strategies={i: strategy for i, (_, strategy) in enumerate(agents)},
        )

        recycles = []

        def on_event(event, payload):
            if event == EngineEvent.PILE_RECYCLED:
                recycles.append(payload["count"])

        session.add_listener(on_event)
        session.start_game()

        if not session.is_game_over:
            raise RuntimeError(f"Automated game stopped in phase {session.phase.value}")

        winner = None
        if session.winner is not None:
            winner = agents[session.players.index(session.winner)][0]

        return MatchResult(
            agents=tuple(name for name, _ in agents),
            winner=winner,
            length=session.turn_count,
            recycles=len(recycles),
            truncated=session.truncated,
        )

    def play_match(
        self,
        agents: List[Tuple[str, Strategy]],
        n_games: int = 1,
        seed: Optional[int] = None,
    ) -> List[MatchResult]:
        """
        进行多局，每局座位轮换一次

        Args:
            agents: (名称, 策略) 列表
            n_games: 对局数
            seed: 基础随机种子 (第 i 局使用 seed + i)

        Returns:
            对局结果列表
        """
        assert len(agents) >= 2

        results = []
        for game_idx in range(n_games):
            shift = game_idx % len(agents)
            seating = agents[shift:] + agents[:shift]
            game_seed = None if seed is None else seed + game_idx
            results.append(self.play_game(seating, seed=game_seed))

        return results

    def round_robin(
        self,
        agents: List[Tuple[str, Strategy]],
        n_games: int = 10,
        seed: Optional[int] = None,
    ) -> TournamentResult:
        """
        统计多局胜率

        Args:
            agents: (名称, 策略) 列表
            n_games: 对局数
            seed: 基础随机种子

        Returns:
            锦标赛结果
        """
        standings = {name: defaultdict(float) for name, _ in agents}
        matches = self.play_match(agents, n_games, seed=seed)

        for result in matches:
            for name in result.agents:
                standings[name]["games"] += 1
            if result.winner is not None:
                standings[result.winner]["wins"] += 1

        # 计算胜率
        for name, stats in standings.items():
            if stats["games"] > 0:
                stats["win_rate"] = stats["wins"] / stats["games"]

        truncated = sum(1 for m in matches if m.truncated)
        if truncated:
            logger.info(f"{truncated}/{len(matches)} games hit the turn limit")

        return TournamentResult(
            standings={name: dict(stats) for name, stats in standings.items()},
            total_games=len(matches),
            matches=matches,
        )
