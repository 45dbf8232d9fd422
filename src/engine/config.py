"""
Engine Configuration

Match-level tunables. Defaults follow the standard ruleset; every field can
be overridden from the environment.
"""

from dataclasses import dataclass, fields
import os


ENV_PREFIX = "STACKRIFT_"


@dataclass
class EngineConfig:
    """Configuration for a single match."""

    # Players
    starting_life: int = 20
    min_players: int = 2

    # Mana ramp
    max_mana: int = 10

    # Setup
    opening_hand_size: int = 4
    shuffle_on_start: bool = True

    # Regions: cards of a region a player needs before its passives apply
    region_threshold: int = 2

    # Guard against runaway trigger cascades within one drain
    max_resolutions: int = 1000

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create config from STACKRIFT_* environment variables."""
        config = cls()
        for f in fields(cls):
            raw = os.environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            if f.type in (bool, "bool"):
                value = raw.strip().lower() in ("1", "true", "yes", "on")
            else:
                value = int(raw)
            setattr(config, f.name, value)
        return config


# Default configuration instance
DEFAULT_CONFIG = EngineConfig()
