from __future__ import annotations

from helpers import scene
from storyscenes.extraction.model import Scene
from storyscenes.extraction.reconciler import reconcile_scenes


def _scenes(*pairs):
    return [Scene.model_validate(scene(number, ts)) for number, ts in pairs]


def test_offsets_ordinals_and_timestamps():
    local = _scenes((1, 20.0), (2, 80.0))

    rewritten = reconcile_scenes(local, scenes_so_far=3, time_so_far=100.0)

    assert [(s.scene_number, s.timestamp) for s in rewritten] == [(4, 120.0), (5, 180.0)]


def test_other_fields_are_untouched_and_input_is_not_mutated():
    local = _scenes((1, 5.0))

    rewritten = reconcile_scenes(local, scenes_so_far=10, time_so_far=50.0)

    assert local[0].scene_number == 1
    assert local[0].timestamp == 5.0
    unchanged = {"text_segment", "illustration_prompt", "emotion", "importance"}
    assert rewritten[0].model_dump(include=unchanged) == local[0].model_dump(include=unchanged)


def test_zero_offsets_are_identity():
    local = _scenes((1, 1.0), (2, 2.0))
    assert reconcile_scenes(local, 0, 0.0) == local


def test_empty_chunk_yields_nothing():
    assert reconcile_scenes([], 4, 200.0) == []
