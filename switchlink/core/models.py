"""
SwitchLink core models

Static per-switch configuration, validated once when the platform loads.

Accepts both the camelCase keys used in accessory config files
(dependsOn / dependsOff) and snake_case keyword arguments.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from switchlink.errors import SelfDependencyError


class SwitchKind(Enum):
    """Capability type exposed to the host."""
    SWITCH = "switch"
    BLINDS = "blinds"


class SwitchConfig(BaseModel):
    """Configuration for one switch."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    depends_on: List[str] = Field(default_factory=list, alias="dependsOn")
    depends_off: List[str] = Field(default_factory=list, alias="dependsOff")
    debug: bool = False
    kind: SwitchKind = Field(default=SwitchKind.SWITCH, alias="type")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be blank")
        return v

    @field_validator("depends_on", "depends_off", mode="before")
    @classmethod
    def normalize_names(cls, v: Any) -> List[str]:
        # Ordered set: first occurrence wins, blanks dropped
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        seen: List[str] = []
        for item in v:
            item = str(item).strip()
            if item and item not in seen:
                seen.append(item)
        return seen

    @model_validator(mode="after")
    def reject_self_dependency(self) -> "SwitchConfig":
        if self.name in self.depends_on:
            raise SelfDependencyError(self.name, "dependsOn")
        if self.name in self.depends_off:
            raise SelfDependencyError(self.name, "dependsOff")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SwitchConfig":
        """Build from an accessory config block."""
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "dependsOn": list(self.depends_on),
            "dependsOff": list(self.depends_off),
            "debug": self.debug,
            "type": self.kind.value,
        }
