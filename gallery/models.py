from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


class ServerGameState(str, Enum):
    NONE = 'None'
    WAITING = 'Waiting'  # a room starts here
    SEND_TARGETS = 'SendTargets'
    BEGIN_ROUND = 'BeginRound'
    SIMULATE_ROUND = 'SimulateRound'
    END_ROUND = 'EndRound'


class CountDownState(str, Enum):
    ENTER = 'Enter'
    GET_READY = 'GetReady'
    COUNT_DOWN = 'CountDown'


@dataclass(frozen=True)
class TargetArchetype:
    id: int
    name: str
    value: int


@dataclass
class Target:
    uid: str
    id: int
    name: str
    value: int
    row: int
    claimed: bool = False

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'value': self.value,
            'uid': self.uid,
            'claimed': self.claimed,
            'row': self.row,
        }


@dataclass
class NetworkedUser:
    user_id: str
    session_id: str
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self):
        return {
            'id': self.user_id,
            'sessionId': self.session_id,
            'attributes': dict(self.attributes),
        }


@dataclass
class NetworkedEntity:
    entity_id: str
    owner_id: str
    creation_id: str = ''
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self):
        return {
            'id': self.entity_id,
            'ownerId': self.owner_id,
            'creationId': self.creation_id,
            'attributes': dict(self.attributes),
        }


TIE_ID = "It's a tie!"
UNDECIDED_ID = 'TBD'


@dataclass
class WinnerResult:
    id: str = ''
    score: int = 0
    tie: bool = False
    tied: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            'id': self.id,
            'score': self.score,
            'tie': self.tie,
            'tied': list(self.tied),
        }
