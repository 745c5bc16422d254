# backend/gpadmin/schemas/__init__.py

from .event import RuntimeConfig, EventInput  # noqa: F401
from .pilot import PilotRecord, PilotInput  # noqa: F401
from .time_attack import (  # noqa: F401
    SessionStatus,
    TimeAttackTime,
    TimeAttackSession,
    TimeAttackRankingRow,
)
from .qualy import QualyStatus, QualyTime, QualySession, QualyRecord  # noqa: F401
from .standings import StandingSource, CombinedStandingRow  # noqa: F401
from .results import (  # noqa: F401
    RaceKey,
    RacePilot,
    RaceResultEntry,
    RaceComputedResult,
    StoredResults,
    TeamRecord,
    IndividualStandingRow,
    TeamStandingRow,
)
from .raffles import (  # noqa: F401
    RaffleRules,
    RaffleParticipant,
    Raffle,
    RaffleHistoryEntry,
)
