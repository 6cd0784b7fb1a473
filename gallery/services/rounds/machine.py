import logging
import math

from gallery import messages
from gallery.models import CountDownState, ServerGameState
from .scoring import get_round_winner, reset_for_new_round

logger = logging.getLogger(__name__)

# Seconds of "Get Ready!" and of numeric countdown before a round begins
GET_READY_TIME = 3
COUNT_DOWN_TIME = 3

MIN_TARGETS = 10
TARGETS_PER_USER = 10
MAX_TARGETS = 100


def game_loop(room, delta_time: float) -> None:
    """Advance the room's game state by one tick.

    ``delta_time`` is in seconds, not milliseconds.
    """
    state = room.current_state
    if state == ServerGameState.NONE:
        return
    if state == ServerGameState.WAITING:
        waiting_logic(room, delta_time)
    elif state == ServerGameState.SEND_TARGETS:
        send_targets_logic(room, delta_time)
    elif state == ServerGameState.BEGIN_ROUND:
        begin_round_logic(room, delta_time)
    elif state == ServerGameState.SIMULATE_ROUND:
        simulate_round_logic(room, delta_time)
    elif state == ServerGameState.END_ROUND:
        end_round_logic(room, delta_time)
    else:
        logger.error(f"[state] unknown game state {state!r}")


def move_to_state(room, new_state: ServerGameState) -> None:
    room.last_state = room.current_state
    room.current_state = new_state
    room.state.set_room_attribute(messages.LAST_STATE, room.last_state.value)
    room.state.set_room_attribute(messages.CURRENT_STATE, new_state.value)
    logger.info(f"[state] room={room.room_id} {room.last_state.value} -> {new_state.value}")


def waiting_logic(room, delta_time: float) -> None:
    # Waiting is used twice per round; what it waits for depends on where we came from
    if room.last_state in (ServerGameState.NONE, ServerGameState.END_ROUND):
        current_users = len(room.state.users)
        min_players = room.options.min_req_players
        if current_users < min_players:
            room.state.set_room_attribute(
                messages.GENERAL_MESSAGE,
                f"Waiting for more players to join - ({current_users}/{min_players})",
            )
            return
        if not room.state.check_all_ready():
            return
        move_to_state(room, ServerGameState.SEND_TARGETS)

    elif room.last_state == ServerGameState.SEND_TARGETS:
        # Everyone has the lineup; wait for all of them to be ready again
        if not room.state.check_all_ready():
            return
        # No more joins until this round has ended
        room.lock()
        move_to_state(room, ServerGameState.BEGIN_ROUND)


def target_count_for(room) -> int:
    upper = min(len(room.state.users) * TARGETS_PER_USER, MAX_TARGETS)
    return room.rng.randint(MIN_TARGETS, max(MIN_TARGETS, upper))


def send_targets_logic(room, delta_time: float) -> None:
    # Clients re-ready once they have the targets loaded
    room.state.set_users_attribute(messages.CLIENT_READY_STATE, messages.WAITING)

    count = target_count_for(room)
    lineup = room.make_lineup(count, room.options.number_of_target_rows)
    room.state.load_lineup(lineup)
    logger.info(f"[lineup] room={room.room_id} targets={len(room.state.current_target_set)}")

    room.sink.broadcast(messages.NEW_TARGET_LINE_UP, {'targets': [t.to_dict() for t in lineup]})
    move_to_state(room, ServerGameState.WAITING)


def _save_count_down(room) -> None:
    room.state.set_room_attribute(messages.CURRENT_COUNT_DOWN_STATE, room.count_down_state.value)
    room.state.set_room_attribute(messages.CURR_COUNT_DOWN, str(room.curr_count_down))


def begin_round_logic(room, delta_time: float) -> None:
    sub_state = room.count_down_state

    if sub_state == CountDownState.ENTER:
        room.state.set_room_attribute(messages.BEGIN_ROUND_COUNT_DOWN_LABEL, '')
        room.sink.broadcast(messages.BEGIN_ROUND_COUNT_DOWN, {})
        room.curr_count_down = 0.0
        room.count_down_state = CountDownState.GET_READY

    elif sub_state == CountDownState.GET_READY:
        room.state.set_room_attribute(messages.BEGIN_ROUND_COUNT_DOWN_LABEL, 'Get Ready!')
        if room.curr_count_down < GET_READY_TIME:
            room.curr_count_down += delta_time
        else:
            room.count_down_state = CountDownState.COUNT_DOWN
            room.curr_count_down = float(COUNT_DOWN_TIME)

    elif sub_state == CountDownState.COUNT_DOWN:
        room.state.set_room_attribute(
            messages.BEGIN_ROUND_COUNT_DOWN_LABEL, str(math.ceil(room.curr_count_down))
        )
        # A tick landing exactly on zero is still counted
        if room.curr_count_down >= 0:
            room.curr_count_down -= delta_time
        else:
            room.sink.broadcast(messages.BEGIN_ROUND, {})
            move_to_state(room, ServerGameState.SIMULATE_ROUND)
            room.state.set_users_attribute(messages.CLIENT_READY_STATE, messages.WAITING)
            room.count_down_state = CountDownState.ENTER

    _save_count_down(room)


def simulate_round_logic(room, delta_time: float) -> None:
    if room.state.current_active_targets:
        return

    for target in room.state.current_target_set.values():
        if not target.claimed:
            logger.error(f"[round] no more active targets but target {target.uid} has not been claimed")

    move_to_state(room, ServerGameState.END_ROUND)


def end_round_logic(room, delta_time: float) -> None:
    winner = get_round_winner(room)
    logger.info(f"[round-end] room={room.room_id} winner={winner.id} score={winner.score} tie={winner.tie}")
    room.sink.broadcast(messages.ON_ROUND_END, {'winner': winner.to_dict()})

    reset_for_new_round(room)
    move_to_state(room, ServerGameState.WAITING)
