import pytest

from conftest import add_player, fixed_lineup, make_target, start_round
from gallery import messages
from gallery.messages import CustomMethodRequest, InvalidParamsError
from gallery.models import ServerGameState, TIE_ID, UNDECIDED_ID
from gallery.services.rounds.scoring import get_round_winner, reset_for_new_round, score_target


def _score(room, entity_id, uid, client='sA'):
    score_target(room, client, CustomMethodRequest('scoreTarget', [entity_id, uid]))


@pytest.fixture()
def live_room(make_room):
    room = make_room(lineup=fixed_lineup(make_target('T1', 10), make_target('T2', 15), make_target('T3', 30)))
    add_player(room, 'A')
    add_player(room, 'B')
    start_round(room)
    return room


def test_first_claim_scores(live_room, sink):
    sink.clear()
    _score(live_room, 'entA', 'T1')
    assert live_room.state.game_scores == {'entA': 10}
    assert 'T1' not in live_room.state.current_active_targets
    assert live_room.state.current_target_set['T1'].claimed is True
    assert sink.of_kind(messages.ON_SCORE_UPDATE) == [{'entityID': 'entA', 'targetUID': 'T1', 'score': 10}]


def test_second_claim_is_a_no_op(live_room, sink):
    sink.clear()
    _score(live_room, 'entA', 'T1')
    _score(live_room, 'entB', 'T1', client='sB')
    _score(live_room, 'entA', 'T1')
    assert live_room.state.game_scores == {'entA': 10}
    assert len(sink.of_kind(messages.ON_SCORE_UPDATE)) == 1


def test_scores_accumulate_per_entity(live_room, sink):
    _score(live_room, 'entA', 'T1')
    _score(live_room, 'entA', 'T2')
    _score(live_room, 'entB', 'T3', client='sB')
    assert live_room.state.game_scores == {'entA': 25, 'entB': 30}
    claimed = sum(t.value for t in live_room.state.current_target_set.values() if t.claimed)
    assert sum(live_room.state.game_scores.values()) == claimed
    assert sink.of_kind(messages.ON_SCORE_UPDATE)[-2]['score'] == 25


def test_unknown_entity_and_target_are_ignored(live_room, sink):
    sink.clear()
    _score(live_room, 'entGhost', 'T1')
    _score(live_room, 'entA', 'NOPE')
    assert live_room.state.game_scores == {}
    assert len(live_room.state.current_active_targets) == 3
    assert sink.of_kind(messages.ON_SCORE_UPDATE) == []


def test_claimed_flag_blocks_scoring(live_room):
    live_room.state.current_target_set['T1'].claimed = True
    _score(live_room, 'entA', 'T1')
    assert live_room.state.game_scores == {}


def test_missing_params_raise(live_room):
    with pytest.raises(InvalidParamsError):
        score_target(live_room, 'sA', CustomMethodRequest('scoreTarget', ['entA']))
    with pytest.raises(InvalidParamsError):
        score_target(live_room, 'sA', CustomMethodRequest('scoreTarget', None))


def test_scoring_outside_simulate_round_is_ignored(make_room, sink):
    room = make_room(lineup=fixed_lineup(make_target('T1', 10)))
    add_player(room, 'A')
    add_player(room, 'B')
    # Not in SimulateRound: even a malformed request is ignored
    score_target(room, 'sA', CustomMethodRequest('scoreTarget', None))
    _score(room, 'entA', 'T1')
    assert room.state.game_scores == {}
    assert sink.of_kind(messages.ON_SCORE_UPDATE) == []


def test_winner_outside_end_round_is_tbd(live_room):
    winner = get_round_winner(live_room)
    assert winner.id == UNDECIDED_ID


def test_winner_single_leader(live_room):
    live_room.state.game_scores.update({'entA': 40, 'entB': 30})
    live_room.current_state = ServerGameState.END_ROUND
    assert get_round_winner(live_room).to_dict() == {'id': 'entA', 'score': 40, 'tie': False, 'tied': []}


def test_winner_tie(live_room):
    live_room.state.game_scores.update({'entA': 30, 'entB': 30})
    live_room.current_state = ServerGameState.END_ROUND
    winner = get_round_winner(live_room)
    assert winner.id == TIE_ID
    assert winner.tie is True
    assert winner.score == 30
    assert set(winner.tied) == {'entA', 'entB'}


def test_winner_skips_departed_entities(live_room):
    live_room.state.game_scores.update({'entA': 100, 'entB': 30})
    live_room.state.remove_entity('entA')
    live_room.current_state = ServerGameState.END_ROUND
    assert get_round_winner(live_room).to_dict() == {'id': 'entB', 'score': 30, 'tie': False, 'tied': []}


def test_winner_with_no_scores(live_room):
    live_room.current_state = ServerGameState.END_ROUND
    assert get_round_winner(live_room).to_dict() == {'id': '', 'score': 0, 'tie': False, 'tied': []}


def test_reset_is_idempotent(live_room):
    _score(live_room, 'entA', 'T1')
    live_room.lock()
    for _ in range(2):
        reset_for_new_round(live_room)
        assert live_room.state.current_target_set == {}
        assert live_room.state.current_active_targets == {}
        assert live_room.state.game_scores == {}
        assert all(
            u.attributes[messages.CLIENT_READY_STATE] == messages.WAITING
            for u in live_room.state.users.values()
        )
        assert live_room.locked is False
