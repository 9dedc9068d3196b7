from chaveamento.repositories.ports import (
    BracketNodeRepository,
    GroupRepository,
    MatchRepository,
    PartnerHistoryRepository,
    PlayerStatsRepository,
    Scope,
    UnitRepository,
)

__all__ = [
    "Scope",
    "UnitRepository",
    "GroupRepository",
    "MatchRepository",
    "BracketNodeRepository",
    "PartnerHistoryRepository",
    "PlayerStatsRepository",
]
