"""
Game configuration - starting conditions for a new game.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from inkwell.core.state import GameTime, VariableValue


class GameConfig(BaseModel):
    """
    Starting conditions handed to Engine.new_game().

    Usage:
        config = GameConfig(
            start_location="tavern",
            start_time=GameTime(day=1, hour=8),
            start_variables={"gold": 100},
        )
    """

    model_config = ConfigDict(frozen=True, extra='forbid')

    start_location: str
    start_time: GameTime = Field(default_factory=lambda: GameTime(day=1, hour=8))
    start_flags: dict[str, bool] = Field(default_factory=dict)
    start_variables: dict[str, VariableValue] = Field(default_factory=dict)
    start_inventory: list[str] = Field(default_factory=list)
    locale: str = "en"
