"""回合状态机测试"""
import pytest

from core.cards import Card, CardState, Rank, Suit, SUITS
from core.config import GameConfig, LayoutConfig, SlotDef
from core.deck import DeckDefinition
from core.engine import EngineEvent, GameSession, Phase
from core.errors import DefinitionError, NotStartedError


def all_human_session(num_players=4, **config):
    """所有座位都是人类: 引擎不会自行推进回合"""
    config.setdefault("seed", 42)
    layout = LayoutConfig(slots=[SlotDef(i + 1, human=True) for i in range(num_players)])
    return GameSession(config=GameConfig(**config), layout=layout)


def give_card(session, player, rank, suit, keep=()):
    """
    把指定牌面的牌换到 player 手中

    与摸牌堆或其他玩家的一张牌交换位置，总张数不变
    """
    for card in player.hand:
        if card.rank == rank and card.suit == suit:
            return card

    swap = next(c for c in player.hand if not any(c is k for k in keep))
    containers = [session.tableau.draw_pile] + [
        p.hand.cards for p in session.players if p is not player
    ]
    for container in containers:
        for i, card in enumerate(container):
            if card.rank == rank and card.suit == suit:
                container[i] = swap
                swap.state = card.state
                player.hand.remove(swap)
                player.hand.add(card)
                card.state = CardState.IN_HAND
                return card
    raise LookupError(f"{rank} {suit} not found")


def matching_face(target):
    """与目标牌同点数、不同花色"""
    suit = next(s for s in SUITS if s != target.suit)
    return target.rank, suit


def non_matching_face(target):
    """与目标牌点数、花色都不同"""
    rank = Rank(target.rank % 13 + 1)
    suit = next(s for s in SUITS if s != target.suit)
    return rank, suit


class TestStartGame:
    """开局测试"""

    def test_initial_state(self):
        session = all_human_session()
        assert session.phase == Phase.IDLE
        assert session.current_player is None
        assert not session.started
        assert len(session.tableau.draw_pile) == 52

    def test_deal_scenario(self):
        session = all_human_session()
        assert session.start_game()

        assert all(len(p.hand) == 7 for p in session.players)
        assert len(session.tableau.draw_pile) == 23
        assert session.target_card is not None
        assert session.target_card.state == CardState.IS_TARGET
        assert session.phase == Phase.PRE_TURN
        # 指定首位玩家 (座位 0) 的左手边先行动
        assert session.current_index == 1
        assert session.turn_count == 1
        assert session.count_cards() == 52

    def test_deal_order(self):
        session = all_human_session()
        dealt = []
        session.add_listener(
            lambda event, payload: dealt.append(payload["player"].player_num)
            if event == EngineEvent.CARD_DEALT else None
        )
        session.start_game()
        assert len(dealt) == 28
        assert dealt[:8] == [2, 3, 4, 1, 2, 3, 4, 1]

    def test_anchor_index(self):
        # 多个人类座位时以第一个为准
        layout = LayoutConfig(slots=[SlotDef(1), SlotDef(2, human=True), SlotDef(3, human=True)])
        session = GameSession(GameConfig(seed=1), layout)
        assert session.anchor_index == 1

        bots = GameSession(GameConfig(anchor_slot=2), LayoutConfig.default(3, human_slot=None))
        assert bots.anchor_index == 2
        assert bots.first_turn_index == 0

        with pytest.raises(DefinitionError):
            GameSession(GameConfig(anchor_slot=5), LayoutConfig.default(3, human_slot=None))

    def test_start_twice(self):
        session = all_human_session()
        assert session.start_game()
        assert not session.start_game()
        assert session.count_cards() == 52

    def test_deck_too_small(self):
        layout = LayoutConfig(slots=[SlotDef(i + 1, human=True) for i in range(4)])
        session = GameSession(
            GameConfig(seed=0),
            layout,
            definition=DeckDefinition.grid([1, 2, 3, 4, 5], ["H", "S"]),
        )
        with pytest.raises(DefinitionError):
            session.start_game()

    def test_custom_deck(self):
        layout = LayoutConfig(slots=[SlotDef(1, human=True), SlotDef(2, human=True)])
        session = GameSession(
            GameConfig(seed=0, num_starting_cards=2),
            layout,
            definition=DeckDefinition.from_dict({"cards": ["7H"] * 6}),
        )
        session.start_game()
        assert len(session.tableau.draw_pile) == 1
        assert session.count_cards() == 6


class TestValidPlay:
    """出牌合法性测试"""

    def test_target_seven_hearts(self):
        session = all_human_session()
        session.tableau.move_to_target(Card(7, Suit.HEARTS))
        assert session.valid_play(Card(7, Suit.SPADES))
        assert session.valid_play(Card(2, Suit.HEARTS))
        assert not session.valid_play(Card(2, Suit.CLUBS))

    def test_no_target(self):
        session = all_human_session()
        assert not session.valid_play(Card(7, Suit.SPADES))

    def test_house_rules(self):
        session = all_human_session(house_rules=("eights_wild",))
        session.tableau.move_to_target(Card(7, Suit.HEARTS))
        assert session.valid_play(Card(8, Suit.CLUBS))


class TestPassTurn:
    """回合流转测试"""

    def test_not_started(self):
        session = all_human_session()
        with pytest.raises(NotStartedError):
            session.pass_turn()

    def test_rotation(self):
        session = all_human_session()
        session.start_game()
        start = session.current_index
        for i in range(1, 9):
            assert session.pass_turn()
            assert session.current_index == (start + i) % 4
            assert session.phase == Phase.PRE_TURN

    def test_explicit_next(self):
        session = all_human_session()
        session.start_game()
        assert session.pass_turn(3)
        assert session.current_index == 3
        with pytest.raises(ValueError):
            session.pass_turn(4)

    def test_turn_passed_event(self):
        session = all_human_session()
        events = []
        session.add_listener(lambda event, payload: events.append((event, payload)))
        session.start_game()
        previous = session.current_player
        session.pass_turn()

        event, payload = events[-1]
        assert event == EngineEvent.TURN_PASSED
        assert payload["previous"] is previous
        assert payload["player"] is session.current_player

    def test_max_turns(self):
        session = all_human_session(max_turns=2)
        session.start_game()
        assert session.pass_turn()
        assert not session.pass_turn()
        assert session.is_game_over
        assert session.truncated
        assert session.winner is None


class TestSubmitPlay:
    """出牌测试"""

    def test_valid_play(self):
        session = all_human_session()
        session.start_game()
        player = session.current_player
        old_target = session.target_card
        card = give_card(session, player, *matching_face(old_target))

        assert session.submit_play(card)
        assert session.target_card is card
        assert card not in player.hand
        assert old_target.state == CardState.IN_DISCARD
        assert len(player.hand) == 6
        assert session.current_index == 2
        assert session.count_cards() == 52

    def test_invalid_play(self):
        session = all_human_session()
        session.start_game()
        player = session.current_player
        card = give_card(session, player, *non_matching_face(session.target_card))

        assert not session.submit_play(card)
        assert card in player.hand
        assert session.current_player is player
        assert session.phase == Phase.PRE_TURN

    def test_card_not_in_hand(self):
        session = all_human_session()
        session.start_game()
        other = session.players[2]
        card = give_card(session, other, *matching_face(session.target_card))

        assert not session.submit_play(card)
        assert card in other.hand
        assert session.current_index == 1

    def test_before_start(self):
        session = all_human_session()
        assert not session.submit_play(session.tableau.draw_pile[0])


class TestSubmitDraw:
    """摸牌测试"""

    def test_draw_ends_turn(self):
        session = all_human_session()
        session.start_game()
        player = session.current_player
        top = session.tableau.draw_pile[0]

        assert session.submit_draw()
        assert top in player.hand
        assert top.state == CardState.IN_HAND
        assert len(player.hand) == 8
        assert len(session.tableau.draw_pile) == 22
        assert session.current_index == 2

    def test_draw_recycles_discard(self):
        session = all_human_session()
        session.start_game()
        tableau = session.tableau
        while tableau.draw_pile:
            tableau.move_to_discard(tableau.draw())
        discards = list(tableau.discard_pile)
        assert len(discards) == 23

        recycled = []
        session.add_listener(
            lambda event, payload: recycled.append(payload["count"])
            if event == EngineEvent.PILE_RECYCLED else None
        )
        player = session.current_player
        assert session.submit_draw()

        assert recycled == [23]
        assert len(tableau.draw_pile) == 22
        assert tableau.discard_pile == []
        assert any(c in player.hand for c in discards)
        assert session.count_cards() == 52

    def test_both_piles_empty(self):
        session = all_human_session()
        session.start_game()
        player = session.current_player
        while session.tableau.draw_pile:
            player.add_card(session.tableau.draw())

        assert not session.submit_draw()
        assert session.current_index == 2
        assert session.phase == Phase.PRE_TURN
        assert session.count_cards() == 52

    def test_pass_before_draw_rejected(self):
        session = all_human_session()
        session.start_game()
        assert not session.submit_pass()
        assert session.current_index == 1


class TestDrawThenPlay:
    """摸牌后可继续出牌"""

    def test_draw_keeps_turn(self):
        session = all_human_session(draw_ends_turn=False)
        session.start_game()
        player = session.current_player

        assert session.submit_draw()
        assert session.current_player is player
        assert session.phase == Phase.PRE_TURN
        assert not session.can_draw_this_turn
        assert not session.submit_draw()

        assert session.submit_pass()
        assert session.current_index == 2
        assert session.can_draw_this_turn

    def test_play_after_draw(self):
        session = all_human_session(draw_ends_turn=False)
        session.start_game()
        player = session.current_player
        session.submit_draw()
        card = give_card(session, player, *matching_face(session.target_card))

        assert session.submit_play(card)
        assert session.current_index == 2


class TestWaitingOnCard:
    """牌移动中的挂起"""

    def test_reveal_waits(self):
        session = all_human_session(auto_settle=False)
        session.start_game()
        assert session.phase == Phase.IDLE
        assert session.current_player is None
        target = session.in_flight
        assert target is session.target_card
        assert target.state == CardState.IN_TRANSIT

        assert session.card_arrived(target)
        assert target.state == CardState.IS_TARGET
        assert session.current_index == 1
        assert session.phase == Phase.PRE_TURN

    def test_actions_rejected_while_waiting(self):
        session = all_human_session(auto_settle=False)
        session.start_game()
        session.card_arrived(session.in_flight)
        player = session.current_player

        assert session.submit_draw()
        drawn = session.in_flight
        assert session.phase == Phase.WAITING_ON_CARD
        assert drawn.state == CardState.IN_TRANSIT

        assert not session.submit_draw()
        assert not session.submit_play(player.hand[0])
        assert not session.submit_pass()
        assert not session.card_clicked(player.hand[0])
        assert not session.card_arrived(player.hand[0])
        assert session.current_player is player

        assert session.card_arrived(drawn)
        assert drawn.state == CardState.IN_HAND
        assert session.current_index == 2
        assert session.phase == Phase.PRE_TURN

    def test_automated_player_waits(self):
        session = GameSession(
            GameConfig(seed=42, auto_settle=False),
            LayoutConfig.default(4, human_slot=0),
        )
        session.start_game()
        session.card_arrived(session.in_flight)

        # 座位 1 是自动玩家，已经出牌或摸牌，正在等待
        assert session.current_index == 1
        assert session.phase == Phase.WAITING_ON_CARD
        human_card = session.players[0].hand[0]
        assert not session.card_clicked(human_card)


class TestCardClicked:
    """表现层输入测试"""

    def test_click_draw_pile(self):
        session = all_human_session()
        session.start_game()
        player = session.current_player
        clicked = session.tableau.draw_pile[5]
        top = session.tableau.draw_pile[0]

        assert session.card_clicked(clicked)
        # 总是摸顶上的牌
        assert top in player.hand
        assert clicked not in player.hand

    def test_click_hand_card(self):
        session = all_human_session()
        session.start_game()
        player = session.current_player
        card = give_card(session, player, *matching_face(session.target_card))

        assert session.card_clicked(card)
        assert session.target_card is card

    def test_click_target_ignored(self):
        session = all_human_session()
        session.start_game()
        assert not session.card_clicked(session.target_card)
        assert session.current_index == 1

    def test_click_before_start(self):
        session = all_human_session()
        assert not session.card_clicked(session.tableau.draw_pile[0])


class TestGameOver:
    """游戏结束测试"""

    def _win(self, session):
        player = session.current_player
        card = give_card(session, player, *matching_face(session.target_card))
        for other in [c for c in player.hand if c is not card]:
            player.remove_card(other)
            session.tableau.draw_pile.append(other)
            other.state = CardState.IN_DRAW_PILE
        assert session.count_cards() == 52
        assert session.submit_play(card)
        return player

    def test_winner(self):
        session = all_human_session()
        events = []
        session.add_listener(lambda event, payload: events.append((event, payload)))
        session.start_game()
        player = self._win(session)

        assert session.is_game_over
        assert session.winner is player
        assert session.current_player is player
        assert not session.truncated
        game_over = [p for e, p in events if e == EngineEvent.GAME_OVER]
        assert len(game_over) == 1
        assert game_over[0]["winner"] is player

    def test_actions_ignored_after_game_over(self):
        session = all_human_session()
        session.start_game()
        player = self._win(session)

        assert session.check_game_over()
        assert not session.pass_turn()
        assert session.current_player is player
        assert not session.submit_draw()
        assert session.phase == Phase.GAME_OVER

    def test_deferred_restart(self):
        session = all_human_session()
        restarts = []
        session.add_listener(
            lambda event, payload: restarts.append(event)
            if event == EngineEvent.RESTART else None
        )
        session.start_game()
        self._win(session)

        assert session.pending_deferred == 1
        assert session.run_deferred() == 1
        assert restarts == [EngineEvent.RESTART]
        assert session.phase == Phase.IDLE
        assert session.current_player is None
        assert session.winner is None
        assert not session.started
        assert len(session.tableau.draw_pile) == 52

        assert session.start_game()
        assert session.count_cards() == 52

    def test_custom_scheduler(self):
        scheduled = []
        layout = LayoutConfig(slots=[SlotDef(i + 1, human=True) for i in range(4)])
        session = GameSession(
            GameConfig(seed=42, restart_delay=2.5),
            layout,
            scheduler=lambda delay, callback: scheduled.append((delay, callback)),
        )
        session.start_game()
        self._win(session)

        assert session.pending_deferred == 0
        assert len(scheduled) == 1
        delay, callback = scheduled[0]
        assert delay == 2.5
        callback()
        assert session.phase == Phase.IDLE

    def test_manual_restart_drops_pending_restart(self):
        session = all_human_session()
        session.start_game()
        self._win(session)
        assert session.pending_deferred == 1

        session.restart_game()
        assert session.start_game()
        assert session.pending_deferred == 0
        assert session.run_deferred() == 0
        assert session.phase == Phase.PRE_TURN
        assert session.started

    def test_stale_scheduled_restart_is_noop(self):
        scheduled = []
        layout = LayoutConfig(slots=[SlotDef(i + 1, human=True) for i in range(4)])
        session = GameSession(
            GameConfig(seed=42),
            layout,
            scheduler=lambda delay, callback: scheduled.append(callback),
        )
        restarts = []
        session.add_listener(
            lambda event, payload: restarts.append(event)
            if event == EngineEvent.RESTART else None
        )
        session.start_game()
        self._win(session)

        session.restart_game()
        session.start_game()
        current = session.current_player

        scheduled[0]()
        assert restarts == [EngineEvent.RESTART]
        assert session.phase == Phase.PRE_TURN
        assert session.current_player is current
        assert session.count_cards() == 52

    def test_recycle_on_turn_change(self):
        session = all_human_session()
        session.start_game()
        tableau = session.tableau
        while tableau.draw_pile:
            tableau.move_to_discard(tableau.draw())

        assert session.pass_turn()
        assert len(tableau.draw_pile) == 23
        assert tableau.discard_pile == []


class TestStalemate:
    """两个牌堆都空且无人能出牌"""

    # 三张牌点数、花色都不同: 发完后没有人能出牌，也没有牌可摸
    DEAD_DECK = {"cards": ["AH", "2C", "3D"]}

    def _session(self, layout, **config):
        return GameSession(
            GameConfig(seed=0, num_starting_cards=1, **config),
            layout,
            definition=DeckDefinition.from_dict(self.DEAD_DECK),
        )

    def test_automated_game_ends(self):
        session = self._session(LayoutConfig.default(2, human_slot=None))
        session.start_game()

        assert session.is_game_over
        assert session.truncated
        assert session.winner is None
        assert session.turn_count == 2
        assert session.count_cards() == 3

    def test_draw_then_play_game_ends(self):
        session = self._session(LayoutConfig.default(2, human_slot=None), draw_ends_turn=False)
        session.start_game()
        assert session.is_game_over
        assert session.truncated

    def test_human_passes(self):
        layout = LayoutConfig(slots=[SlotDef(1, human=True), SlotDef(2, human=True)])
        session = self._session(layout)
        session.start_game()
        assert session.current_index == 1

        assert not session.submit_draw()
        assert session.current_index == 0
        assert not session.is_game_over

        assert session.submit_pass()
        assert session.is_game_over
        assert session.truncated
        assert session.pending_deferred == 1


class TestAutomatedPlayers:
    """自动玩家测试"""

    def test_bots_play_until_human(self):
        session = GameSession(GameConfig(seed=7), LayoutConfig.default(4, human_slot=0))
        session.start_game()
        assert session.current_index == 0
        assert session.phase == Phase.PRE_TURN
        assert session.turn_count == 4
        assert session.count_cards() == 52

    def test_custom_strategy(self):
        calls = []

        def always_draw(hand, session):
            calls.append(len(hand))
            return None

        session = GameSession(
            GameConfig(seed=7),
            LayoutConfig.default(3, human_slot=0),
            strategies={1: always_draw, 2: always_draw},
        )
        session.start_game()
        assert calls == [7, 7]
        assert len(session.players[1].hand) == 8
        assert len(session.players[2].hand) == 8

    @pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
    def test_full_game(self, seed):
        session = GameSession(
            GameConfig(seed=seed, max_turns=2000),
            LayoutConfig.default(4, human_slot=None),
        )
        counts = []
        session.add_listener(
            lambda event, payload: counts.append(session.count_cards())
            if event == EngineEvent.TURN_PASSED else None
        )
        session.start_game()

        assert session.is_game_over
        assert all(c == 52 for c in counts)
        if session.winner is not None:
            assert len(session.winner.hand) == 0
        else:
            assert session.truncated

    @pytest.mark.parametrize("draw_ends_turn", [True, False])
    def test_full_game_house_rules(self, draw_ends_turn):
        session = GameSession(
            GameConfig(
                seed=11,
                max_turns=2000,
                draw_ends_turn=draw_ends_turn,
                house_rules=("eights_wild", "match_color"),
            ),
            LayoutConfig.default(3, human_slot=None),
        )
        session.start_game()
        assert session.is_game_over
        assert session.count_cards() == 52

    def test_restart_keeps_playing(self):
        session = GameSession(
            GameConfig(seed=3, max_turns=2000),
            LayoutConfig.default(2, human_slot=None),
        )
        session.start_game()
        assert session.is_game_over
        session.run_deferred()
        assert session.start_game()
        assert session.is_game_over


class TestSnapshot:
    """状态摘要测试"""

    def test_snapshot(self):
        session = all_human_session()
        session.start_game()
        snap = session.snapshot()
        assert snap["phase"] == "pre_turn"
        assert snap["current_player"] == 2
        assert snap["draw_pile"] == 23
        assert snap["hands"] == {1: 7, 2: 7, 3: 7, 4: 7}
        assert snap["winner"] is None

    def test_human_player(self):
        session = GameSession(GameConfig(seed=0), LayoutConfig.default(3, human_slot=2))
        assert session.human_player is session.players[2]
        bots = GameSession(GameConfig(seed=0), LayoutConfig.default(3, human_slot=None))
        assert bots.human_player is None
