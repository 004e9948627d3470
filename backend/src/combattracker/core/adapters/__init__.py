
from .mapper import (
    ParticipantOverrides,
    new_combat_session,
    participant_from_creature,
)

__all__ = [
    "ParticipantOverrides",
    "new_combat_session",
    "participant_from_creature",
]
