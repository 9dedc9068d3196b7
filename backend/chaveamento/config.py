"""
Runtime settings read from the environment (.env supported).

  LOG_LEVEL            logging level for the service (default INFO)
  TIEBREAK_DRAW_MODE   "random" (default) or "deterministic" for residual standings ties
  RANDOM_SEED          optional integer seed for the engine RNG
"""
import os
import random
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DRAW_MODE_RANDOM = "random"
DRAW_MODE_DETERMINISTIC = "deterministic"

TIEBREAK_DRAW_MODE = os.getenv("TIEBREAK_DRAW_MODE", DRAW_MODE_RANDOM).lower()
if TIEBREAK_DRAW_MODE not in (DRAW_MODE_RANDOM, DRAW_MODE_DETERMINISTIC):
    raise ValueError(f"Invalid TIEBREAK_DRAW_MODE: {TIEBREAK_DRAW_MODE}")

_seed = os.getenv("RANDOM_SEED")
RANDOM_SEED: Optional[int] = int(_seed) if _seed else None

# No elimination phase exists above OITAVAS
MAX_ELIMINATION_QUALIFIERS = 16

# Template brackets (TEAMS format) always take the top two of each group
TEMPLATE_QUALIFIERS_PER_GROUP = 2
MIN_TEAMS_FOR_GROUP_STAGE = 6
MIN_PLAYERS_FOR_DUOS = 4

# Placement points awarded per player when a tournament is closed
PLACEMENT_CHAMPION = "campeao"
PLACEMENT_RUNNER_UP = "vice"
PLACEMENT_SEMIFINALIST = "semifinalista"
PLACEMENT_QUARTAS = "quartas"
PLACEMENT_OITAVAS = "oitavas"
PLACEMENT_PARTICIPATION = "participacao"

PLACEMENT_POINTS = {
    PLACEMENT_CHAMPION: 100,
    PLACEMENT_RUNNER_UP: 70,
    PLACEMENT_SEMIFINALIST: 50,
    PLACEMENT_QUARTAS: 30,
    PLACEMENT_OITAVAS: 20,
    PLACEMENT_PARTICIPATION: 10,
}


def build_rng() -> random.Random:
    """Engine RNG; seeded when RANDOM_SEED is set."""
    return random.Random(RANDOM_SEED) if RANDOM_SEED is not None else random.Random()
