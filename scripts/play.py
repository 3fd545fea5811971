#!/usr/bin/env python3
"""
对战脚本 (终端)

Usage:
    python scripts/play.py --mode watch  # 观看自动玩家对战
    python scripts/play.py --mode play   # 与自动玩家对战
    python scripts/play.py --mode play --house-rules eights_wild --players 3
"""
import argparse
import logging
import sys
from pathlib import Path
import time

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from core import (
    GameConfig,
    GameSession,
    LayoutConfig,
    EngineEvent,
    HOUSE_RULES,
    cards_to_str,
    load_definition,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="Bartok Play")

    parser.add_argument(
        "--mode",
        type=str,
        default="watch",
        choices=["watch", "play"],
        help="Mode: watch automated players or play against them",
    )
    parser.add_argument("--players", type=int, default=4, help="Number of players")
    parser.add_argument("--starting-cards", type=int, default=7, help="Cards dealt per player")
    parser.add_argument(
        "--house-rules",
        nargs="*",
        default=[],
        choices=sorted(HOUSE_RULES),
        help="House rules to enable",
    )
    parser.add_argument(
        "--draw-then-play",
        action="store_true",
        help="Allow playing after drawing in the same turn",
    )
    parser.add_argument("--deck", type=str, help="JSON deck definition")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--delay", type=float, default=0.0, help="Delay between moves (watch)")
    parser.add_argument("--games", type=int, default=1, help="Number of games")

    return parser.parse_args()


def print_event(event: EngineEvent, payload: dict):
    """打印引擎事件"""
    if event == EngineEvent.CARD_PLAYED:
        print(f"{payload['player'].name} 出牌: {payload['card'].name}")
    elif event == EngineEvent.CARD_DRAWN:
        player = payload["player"]
        if player.is_human:
            print(f"你摸到: {payload['card'].name}")
        else:
            print(f"{player.name} 摸了一张牌")
    elif event == EngineEvent.PILE_RECYCLED:
        print(f"弃牌堆洗回摸牌堆 ({payload['count']} 张)")
    elif event == EngineEvent.GAME_OVER:
        winner = payload["winner"]
        print("=" * 60)
        print(f"游戏结束! 胜者: {winner.name if winner else '无 (达到回合上限)'}")
        print("=" * 60)


def print_game_state(session: GameSession):
    """打印游戏状态"""
    print("\n" + "=" * 60)
    target = session.target_card
    print(f"目标牌: {target.name if target else '-'}   "
          f"摸牌堆: {len(session.tableau.draw_pile)}   "
          f"弃牌堆: {len(session.tableau.discard_pile)}")
    print("-" * 60)
    for player in session.players:
        marker = "*" if player is session.current_player else " "
        if player.is_human:
            print(f"{marker}[{player.name}] 手牌 ({len(player.hand)}): {cards_to_str(player.hand.fan())}")
        else:
            print(f"{marker} {player.name}  手牌数: {len(player.hand)}")
    print("=" * 60)


def build_session(args, human_slot) -> GameSession:
    config = GameConfig(
        num_starting_cards=args.starting_cards,
        house_rules=tuple(args.house_rules),
        draw_ends_turn=not args.draw_then_play,
        seed=args.seed,
        max_turns=1000,
    )
    definition = load_definition(args.deck) if args.deck else None
    session = GameSession(
        config=config,
        layout=LayoutConfig.default(args.players, human_slot=human_slot),
        definition=definition,
    )
    session.add_listener(print_event)
    return session


def watch_game(args):
    """观看自动玩家对战"""
    session = build_session(args, human_slot=None)

    if args.delay > 0:
        def pause(event, payload):
            if event == EngineEvent.TURN_PASSED:
                time.sleep(args.delay)
        session.add_listener(pause)

    for game_idx in range(args.games):
        print(f"\n{'='*60}")
        print(f"Game {game_idx + 1}/{args.games}")
        print("=" * 60)

        session.start_game()
        print(f"总回合数: {session.turn_count}")

        # 执行延迟重开
        session.run_deferred()


def prompt_human(session: GameSession) -> bool:
    """
    读取人类玩家的输入

    Returns:
        False 表示退出
    """
    player = session.current_player
    hand = player.hand.fan()

    print("\n你的手牌:")
    for i, card in enumerate(hand):
        mark = "" if session.valid_play(card) else " (不可出)"
        print(f"  {i}: {card.name}{mark}")

    draw_hint = "'d' 摸牌" if session.can_draw_this_turn else "'p' 放弃"
    while True:
        choice = input(f"\n请选择牌的编号 ({draw_hint}, 'q' 退出): ").strip().lower()
        if choice == "q":
            return False
        if choice == "d" and session.tableau.draw_pile:
            if session.card_clicked(session.tableau.draw_pile[0]):
                return True
        elif choice == "d" or choice == "p":
            if session.can_draw_this_turn:
                # 两个牌堆都空时 submit_draw 直接结束回合
                session.submit_draw()
                return True
            if session.submit_pass():
                return True
        else:
            try:
                idx = int(choice)
            except ValueError:
                print("请输入数字")
                continue
            if 0 <= idx < len(hand) and session.card_clicked(hand[idx]):
                return True
        print("无效选择，请重试")


def play_game(args):
    """与自动玩家对战"""
    session = build_session(args, human_slot=0)

    for game_idx in range(args.games):
        print(f"\n{'='*60}")
        print(f"Game {game_idx + 1}/{args.games}")
        print("你是 Player1!")
        print("=" * 60)

        session.start_game()

        while not session.is_game_over:
            print_game_state(session)
            if not prompt_human(session):
                print("退出游戏")
                return

        if session.winner is not None and session.winner.is_human:
            print("恭喜你赢了!")
        else:
            print("你输了!")

        session.run_deferred()


def main():
    args = parse_args()

    print("=" * 60)
    print("Bartok")
    print("=" * 60)

    if args.mode == "watch":
        watch_game(args)
    elif args.mode == "play":
        play_game(args)


if __name__ == "__main__":
    main()
