"""
Tournament blind level model.
"""
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class BlindLevel(BaseModel):
    """One row of a tournament's blind schedule."""
    level_number: int = Field(..., ge=0)
    small_blind: int = Field(0, ge=0)
    big_blind: int = Field(0, ge=0)
    ante: int = Field(0, ge=0)
    duration_minutes: int = Field(30, ge=0)
    is_break: bool = False
    break_label: Optional[str] = None

    @model_validator(mode='after')
    def validate_blinds(self) -> 'BlindLevel':
        """Playable levels need 0 < small blind <= big blind."""
        if not self.is_break:
            if self.small_blind <= 0:
                raise ValueError("Small blind must be positive for a playable level")
            if self.big_blind < self.small_blind:
                raise ValueError("Big blind must be at least the small blind")
        return self

    @property
    def blinds_display(self) -> str:
        """Short blinds string, e.g. "500/1k ante 100"."""
        if self.is_break:
            return self.break_label or "Break"
        blinds = f"{_short_chips(self.small_blind)}/{_short_chips(self.big_blind)}"
        if self.ante > 0:
            return f"{blinds} ante {_short_chips(self.ante)}"
        return blinds

    def __str__(self) -> str:
        return f"Level {self.level_number}: {self.blinds_display}"


def _short_chips(value: int) -> str:
    if value >= 1000:
        thousands = value / 1000
        if thousands == int(thousands):
            return f"{int(thousands)}k"
        return f"{thousands:.1f}k"
    return str(value)
