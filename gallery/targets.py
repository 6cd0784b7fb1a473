"""Target archetypes and random lineup generation."""

import random
import uuid
from typing import List, Optional

from gallery.messages import InvalidTargetCountError
from gallery.models import Target, TargetArchetype

CATALOG = (
    TargetArchetype(id=1, name='Target 1', value=5),
    TargetArchetype(id=2, name='Target 2', value=10),
    TargetArchetype(id=3, name='Target 3', value=15),
    TargetArchetype(id=4, name='Target 4', value=30),
    TargetArchetype(id=5, name='Target 5', value=50),
    TargetArchetype(id=6, name='Target 6', value=100),
)


def _positive_int(value, what):
    try:
        number = int(str(value).strip())
    except ValueError:
        raise InvalidTargetCountError(f"Invalid {what} - {value}") from None
    if isinstance(value, bool) or number < 1:
        raise InvalidTargetCountError(f"Invalid {what} - {value}")
    return number


def new_uid(rng: Optional[random.Random] = None) -> str:
    if rng is None:
        return uuid.uuid4().hex
    return uuid.UUID(int=rng.getrandbits(128), version=4).hex


def random_target(rows: int, rng: Optional[random.Random] = None) -> Target:
    """Pick an archetype uniformly and place a fresh, unclaimed copy on a random row."""
    source = rng or random
    archetype = source.choice(CATALOG)
    return Target(
        uid=new_uid(rng),
        id=archetype.id,
        name=archetype.name,
        value=archetype.value,
        row=source.randint(1, rows),
    )


def random_lineup(count, rows, rng: Optional[random.Random] = None) -> List[Target]:
    """Return ``count`` random targets spread over rows ``1..rows``.

    Pass a seeded ``random.Random`` for reproducible lineups; uids stay
    unique within the lineup either way.
    """
    count = _positive_int(count, 'Number of Targets')
    rows = _positive_int(rows, 'Number of Rows')
    lineup = []
    seen = set()
    while len(lineup) < count:
        target = random_target(rows, rng)
        if target.uid in seen:
            continue
        seen.add(target.uid)
        lineup.append(target)
    return lineup
