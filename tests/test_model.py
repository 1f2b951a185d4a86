from __future__ import annotations

import pydantic
import pytest

from helpers import scene
from storyscenes.extraction.model import HeroProfile, Scene, SceneExtractionRequest, ValidationError


def _payload(**overrides):
    payload = {
        "storyContent": "Once upon a time.",
        "storyDuration": 180,
        "hero": {
            "name": "Pip",
            "primaryTrait": "kind",
            "secondaryTrait": "clever",
            "appearance": "red scarf",
            "specialAbility": "talks to birds",
        },
        "eventContext": "first snow",
    }
    payload.update(overrides)
    return payload


def test_request_parsing_success():
    request = SceneExtractionRequest.from_payload(_payload())

    assert request.story_duration == 180.0
    assert request.hero.name == "Pip"
    assert request.hero.special_ability == "talks to birds"
    assert request.event_context == "first snow"


def test_request_accepts_snake_case_fields():
    request = SceneExtractionRequest.from_payload(
        {
            "story_content": "text",
            "story_duration": "42.5",
            "hero": {"name": "Pip", "primary_trait": "kind"},
            "event_context": "rain",
        }
    )
    assert request.story_duration == 42.5
    assert request.hero.primary_trait == "kind"


@pytest.mark.parametrize("field", ["storyContent", "storyDuration", "hero", "eventContext"])
def test_request_missing_field(field):
    payload = _payload()
    payload.pop(field)
    with pytest.raises(ValidationError, match=field):
        SceneExtractionRequest.from_payload(payload)


def test_blank_story_is_missing():
    with pytest.raises(ValidationError, match="storyContent"):
        SceneExtractionRequest.from_payload(_payload(storyContent="   "))


@pytest.mark.parametrize("duration", [0, -3, "soon"])
def test_request_rejects_bad_duration(duration):
    with pytest.raises(ValidationError):
        SceneExtractionRequest.from_payload(_payload(storyDuration=duration))


def test_hero_requires_name():
    with pytest.raises(ValidationError, match="hero.name"):
        SceneExtractionRequest.from_payload(_payload(hero={"primaryTrait": "kind"}))
    with pytest.raises(ValidationError, match="object"):
        SceneExtractionRequest.from_payload(_payload(hero="Pip"))


def test_validation_error_is_value_error():
    assert issubclass(ValidationError, ValueError)


def test_hero_description_skips_empty_fields():
    hero = HeroProfile(name="Pip", primary_trait="kind", appearance="red scarf")
    assert hero.describe() == "- Name: Pip\n- Traits: kind\n- Appearance: red scarf"


def test_scene_tags_are_case_insensitive():
    parsed = Scene.model_validate(scene(1, 2.0, emotion=" Heartwarming "))
    assert parsed.emotion == "heartwarming"


def test_scene_rejects_unknown_emotion():
    with pytest.raises(pydantic.ValidationError):
        Scene.model_validate(scene(1, 2.0, emotion="furious"))


def test_scene_populates_by_python_name():
    parsed = Scene(
        scene_number=1,
        text_segment="text",
        timestamp=0.0,
        illustration_prompt="prompt",
        emotion="peaceful",
        importance="key",
    )
    assert parsed.model_dump(by_alias=True)["sceneNumber"] == 1
