from chaveamento.models.bracket_node import BracketNode, EliminationPhase
from chaveamento.models.group import Group
from chaveamento.models.match import Match, MatchStatus
from chaveamento.models.partner_history import PartnerHistory
from chaveamento.models.player_stats import PlayerStats
from chaveamento.models.registration import ProtectedSeed, Registration
from chaveamento.models.tournament import Tournament, TournamentFormat, TournamentStage
from chaveamento.models.unit import CompetitiveUnit, UnitKind

__all__ = [
    "Tournament",
    "TournamentFormat",
    "TournamentStage",
    "Registration",
    "ProtectedSeed",
    "PartnerHistory",
    "CompetitiveUnit",
    "UnitKind",
    "Group",
    "Match",
    "MatchStatus",
    "BracketNode",
    "EliminationPhase",
    "PlayerStats",
]
