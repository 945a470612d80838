import logging
import os
from pathlib import Path
from typing import Dict, List, Literal, Optional, Tuple
import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_ENV = "SKIRMISH_CONFIG"


class EngineConfig(BaseModel):
    """Rules constants."""
    cols: int = Field(default=10, ge=1)
    rows: int = Field(default=8, ge=1)
    death_teardown_ms: int = Field(default=800, ge=0)  # fall 0.4s + fade 0.4s
    healer_role: str = "mage"
    seed: int = 42


class PlaybackTimings(BaseModel):
    """Real-time pacing used by the playback runtime, in milliseconds."""
    move_step_ms: int = 320
    attack_ms: int = 500
    heal_ms: int = 500
    death_ms: int = 800
    ai_unit_delay_ms: int = 1520  # 520ms settle + 1000ms before the next enemy
    idle_poll_ms: int = 50

    def duration_for(self, kind: str) -> int:
        durations: Dict[str, int] = {
            "move_step": self.move_step_ms,
            "attack": self.attack_ms,
            "heal": self.heal_ms,
            "death": self.death_ms,
        }
        return durations.get(kind, 0)


class UnitSpec(BaseModel):
    """Roster entry for one unit at battle start."""
    id: str
    side: Literal["player", "enemy"]
    archetype: Literal["melee", "ranged"] = "melee"
    role: str
    pos: Tuple[int, int]
    hp: int = Field(gt=0)
    max_hp: Optional[int] = None
    atk: int = Field(ge=0)
    move: int = Field(ge=0)
    attack_range: int = Field(default=1, ge=1)
    heal_power: Optional[int] = None
    heal_range: Optional[int] = None


class Settings(BaseModel):
    engine: EngineConfig = Field(default_factory=EngineConfig)
    playback: PlaybackTimings = Field(default_factory=PlaybackTimings)
    units: Optional[List[UnitSpec]] = None  # None = default squads


def load_settings(path: Optional[str] = None) -> Settings:
    """Load settings from a YAML file, the SKIRMISH_CONFIG path, or defaults."""
    path = path or os.environ.get(CONFIG_ENV)
    if not path:
        return Settings()
    config_path = Path(path)
    if not config_path.exists():
        logger.warning("Config file not found: %s, using defaults", config_path)
        return Settings()
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    settings = Settings.model_validate(data)
    logger.info("Loaded settings from %s", config_path)
    return settings
