from __future__ import annotations

from typing import Iterable, List

from .model import Scene


def reconcile_scenes(scenes: Iterable[Scene], scenes_so_far: int, time_so_far: float) -> List[Scene]:
    """Shift chunk-local ordinals and timestamps into story-wide coordinates."""
    return [
        scene.model_copy(
            update={
                "scene_number": scene.scene_number + scenes_so_far,
                "timestamp": scene.timestamp + time_so_far,
            }
        )
        for scene in scenes
    ]
