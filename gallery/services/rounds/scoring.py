import logging
from collections import defaultdict

from gallery import messages
from gallery.messages import InvalidParamsError
from gallery.models import ServerGameState, TIE_ID, UNDECIDED_ID, WinnerResult

logger = logging.getLogger(__name__)


def score_target(room, client, request) -> None:
    """Custom method ``scoreTarget``: claim a target for an entity.

    ``request.param`` is ``[entity_id, target_uid]``. Only the first claim of
    a target during ``SimulateRound`` scores; anything else is a no-op.
    """
    if room.current_state != ServerGameState.SIMULATE_ROUND:
        logger.debug("[score-skip] cannot score a target until the round has begun")
        return

    param = request.param
    if param is None or len(param) < 2:
        raise InvalidParamsError("Score Target - Missing parameter")

    entity_id = str(param[0])
    target_uid = str(param[1])

    if not room.state.has_entity(entity_id):
        logger.debug(f"[score-skip] no entity with id={entity_id}")
        return

    state = room.state
    if target_uid not in state.current_target_set or target_uid not in state.current_active_targets:
        logger.debug(f"[score-skip] missing target or target already claimed uid={target_uid}")
        return

    target = state.current_target_set[target_uid]
    if target.claimed:
        logger.debug(f"[score-skip] target already claimed uid={target_uid}")
        return

    del state.current_active_targets[target_uid]
    score_target_for_entity(room, entity_id, target)


def score_target_for_entity(room, entity_id, target) -> None:
    state = room.state
    if not state.has_entity(entity_id):
        logger.error(f"[score] can't score target for entity id={entity_id}, it isn't in the room")

    target.claimed = True
    state.game_scores[entity_id] = state.game_scores.get(entity_id, 0) + int(target.value)
    room.sink.broadcast(messages.ON_SCORE_UPDATE, {
        'entityID': entity_id,
        'targetUID': target.uid,
        'score': state.game_scores[entity_id],
    })


def get_round_winner(room) -> WinnerResult:
    """Work out who won the round that just ended.

    Entities that left the room are skipped. Several entities sharing the top
    score make a tie; ``tied`` then lists all of them.
    """
    winner = WinnerResult()
    if room.current_state != ServerGameState.END_ROUND:
        logger.error("[winner] can't determine winner yet, not in EndRound")
        winner.id = UNDECIDED_ID
        return winner

    buckets = defaultdict(list)
    for entity_id, score in room.state.game_scores.items():
        if not room.state.has_entity(entity_id):
            continue
        buckets[score].append(entity_id)

    if not buckets:
        if room.state.game_scores:
            logger.info("[winner] every scoring entity has left the room")
        return winner

    top = max(buckets)
    leaders = buckets[top]
    winner.score = top
    if len(leaders) > 1:
        winner.id = TIE_ID
        winner.tie = True
        winner.tied = list(leaders)
    else:
        winner.id = leaders[0]
    return winner


def unlock_if_able(room) -> None:
    if not room.has_reached_max_clients():
        room.unlock()


def reset_for_new_round(room) -> None:
    """Clear per-round collections, un-ready every user and reopen the room."""
    room.state.clear_round()
    room.state.set_users_attribute(messages.CLIENT_READY_STATE, messages.WAITING)
    unlock_if_able(room)
