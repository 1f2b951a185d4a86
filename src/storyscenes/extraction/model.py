from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Emotion = Literal[
    "joyful",
    "peaceful",
    "exciting",
    "mysterious",
    "heartwarming",
    "adventurous",
    "contemplative",
]
Importance = Literal["key", "major", "minor"]


class ValidationError(ValueError):
    """Raised when the request payload cannot be processed."""


class Scene(BaseModel):
    """Single illustratable moment of the narration."""

    model_config = ConfigDict(populate_by_name=True)

    scene_number: int = Field(alias="sceneNumber", ge=0)
    text_segment: str = Field(alias="textSegment")
    timestamp: float = Field(description="Seconds into the narration")
    illustration_prompt: str = Field(alias="illustrationPrompt")
    emotion: Emotion
    importance: Importance

    @field_validator("emotion", "importance", mode="before")
    @classmethod
    def normalize_tag(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ScenePayload(BaseModel):
    """Structured body returned by the inference service."""

    model_config = ConfigDict(populate_by_name=True)

    scenes: List[Scene]
    scene_count: Optional[int] = Field(default=None, alias="sceneCount")
    reasoning: str = ""


class SceneExtractionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scenes: List[Scene]
    scene_count: int = Field(alias="sceneCount")
    reasoning: str
    chunk_count: int = Field(default=1, alias="chunkCount")
    failed_chunks: List[int] = Field(default_factory=list, alias="failedChunks")

    @property
    def partial(self) -> bool:
        return bool(self.failed_chunks)

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class HeroProfile:
    name: str
    primary_trait: str = ""
    secondary_trait: str = ""
    appearance: str = ""
    special_ability: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "HeroProfile":
        if not isinstance(payload, Mapping):
            raise ValidationError("hero must be an object")
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ValidationError("hero.name is required")
        return cls(
            name=name,
            primary_trait=_text(payload, "primaryTrait", "primary_trait"),
            secondary_trait=_text(payload, "secondaryTrait", "secondary_trait"),
            appearance=_text(payload, "appearance"),
            special_ability=_text(payload, "specialAbility", "special_ability"),
        )

    def describe(self) -> str:
        lines = [f"- Name: {self.name}"]
        traits = ", ".join(trait for trait in (self.primary_trait, self.secondary_trait) if trait)
        if traits:
            lines.append(f"- Traits: {traits}")
        if self.appearance:
            lines.append(f"- Appearance: {self.appearance}")
        if self.special_ability:
            lines.append(f"- Special ability: {self.special_ability}")
        return "\n".join(lines)


@dataclass(frozen=True)
class SceneExtractionRequest:
    story_content: str
    story_duration: float
    hero: HeroProfile
    event_context: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SceneExtractionRequest":
        if not isinstance(payload, Mapping):
            raise ValidationError("Request body must be an object")

        fields = {
            "storyContent": _pick(payload, "storyContent", "story_content"),
            "storyDuration": _pick(payload, "storyDuration", "story_duration"),
            "hero": _pick(payload, "hero"),
            "eventContext": _pick(payload, "eventContext", "event_context"),
        }
        missing = [name for name, value in fields.items() if value in (None, "", {})]
        if isinstance(fields["storyContent"], str) and not fields["storyContent"].strip():
            missing.append("storyContent")
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(sorted(set(missing)))}")

        try:
            duration = float(fields["storyDuration"])
        except (TypeError, ValueError) as exc:
            raise ValidationError("storyDuration must be a number of seconds") from exc
        if not duration > 0 or duration == float("inf"):
            raise ValidationError("storyDuration must be positive")

        return cls(
            story_content=str(fields["storyContent"]),
            story_duration=duration,
            hero=HeroProfile.from_payload(fields["hero"]),
            event_context=str(fields["eventContext"]),
        )


def _pick(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _text(payload: Mapping[str, Any], *keys: str) -> str:
    value = _pick(payload, *keys)
    return str(value).strip() if value is not None else ""
