from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from enum import Enum

class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"
    INK = "ink"

class NotificationSettings(BaseModel):
    dailyFact: bool = True
    explorationGoal: bool = True
    systemUpdates: bool = False

class PrivacySettings(BaseModel):
    clearOnExit: bool = False

class AccessibilitySettings(BaseModel):
    highContrast: bool = False
    reduceMotion: bool = False

# Nested groups that are merged key-by-key instead of replaced
SETTINGS_GROUPS = ("notifications", "privacy", "accessibility")

class Settings(BaseModel):
    theme: Theme = Theme.SYSTEM
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    privacy: PrivacySettings = Field(default_factory=PrivacySettings)
    accessibility: AccessibilitySettings = Field(default_factory=AccessibilitySettings)

    class Config:
        extra = "ignore"

    @classmethod
    def merged(cls, partial: Optional[Dict[str, Any]], base: Optional["Settings"] = None) -> "Settings":
        """Replace-merge ``partial`` over ``base`` (defaults when omitted).

        Top-level keys replace; each nested group is merged over the base
        group so a partial group is always filled in. Raises
        ``pydantic.ValidationError`` on bad values.
        """
        data = (base or cls()).model_dump(mode="json")
        for key, value in (partial or {}).items():
            if key in SETTINGS_GROUPS and isinstance(value, dict):
                data[key] = {**data[key], **value}
            elif key in SETTINGS_GROUPS and value is None:
                continue
            else:
                data[key] = value
        return cls.model_validate(data)

def default_settings() -> Settings:
    return Settings()
