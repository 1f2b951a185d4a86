from __future__ import annotations

from textwrap import dedent

from storyscenes.chunker.model import Chunk

from .model import SceneExtractionRequest

SYSTEM_PROMPT = "You are an expert at visual storytelling and scene analysis for children's books."

ILLUSTRATION_GUIDELINES = dedent(
    """
    The illustration prompts should:
    - Be child-friendly, bright, and magical
    - Use warm, watercolor or soft digital art style
    - Be specific about colors, composition, and atmosphere
    - Include the hero character {hero_name} in the scene
    - Be under 150 words each
    - CRITICAL SAFETY RULES:
      * NEVER show characters alone - always include friends or magical companions
      * NEVER use dark, scary, or negative terms
      * ALWAYS make scenes bright, cheerful, and safe
      * Replace problematic terms: gargoyle -> friendly guardian, bat -> butterfly, ghost -> friendly spirit
      * End each prompt with "child-friendly, warm bedtime illustration"
    """
).strip()

RESPONSE_SCHEMA = dedent(
    """
    Return your analysis as a JSON object matching this structure:
    {{
      "scenes": [
        {{
          "sceneNumber": 1,
          "textSegment": "exact text from the {source}",
          "timestamp": 0.0,
          "illustrationPrompt": "detailed illustration prompt",
          "emotion": "joyful|peaceful|exciting|mysterious|heartwarming|adventurous|contemplative",
          "importance": "key|major|minor"
        }}
      ],
      "sceneCount": total_number,
      "reasoning": "brief explanation of scene selection"
    }}
    """
).strip()

FULL_STORY_PROMPT = dedent(
    """
    You are an expert at analyzing children's bedtime stories and identifying key visual moments for illustration.

    Analyze the following story and identify ALL important scenes for illustration. Consider:
    - Natural narrative breaks and transitions
    - Key emotional moments
    - Visual variety (different settings, actions, moods)
    - Story pacing (distribute scenes evenly throughout)
    - Generate as many illustrations as needed to fully capture the story

    Story Context: {event_context}
    Story Duration: {duration} seconds

    Hero:
    {hero}

    STORY TEXT:
    {story}

    INSTRUCTIONS:
    1. Identify ALL key scenes in this story - there is no limit on the number of scenes
    2. Number scenes in story order starting from 1
    3. For each scene, provide:
       - The exact text segment from the story
       - A detailed illustration prompt
       - Estimated timestamp (0 to {duration} seconds) when this scene occurs during audio playback
       - The emotional tone and importance

    {guidelines}

    {schema}
    """
).strip()

CHUNK_PROMPT = dedent(
    """
    You are analyzing part {part} of {total} of a children's bedtime story.

    Story Context: {event_context}
    Chunk Duration: {duration} seconds

    Hero:
    {hero}

    STORY CHUNK:
    {story}

    INSTRUCTIONS:
    1. Identify key scenes in THIS SECTION ONLY
    2. Number the scenes of this section starting from 1 (numbering is adjusted automatically)
    3. For each scene, provide:
       - The exact text segment from the story chunk
       - A detailed illustration prompt
       - Estimated timestamp RELATIVE TO THIS CHUNK (0 to {duration} seconds)
       - The emotional tone and importance
    {position_notes}
    {guidelines}

    {schema}
    """
).strip()


def render_full_story_prompt(request: SceneExtractionRequest) -> str:
    return FULL_STORY_PROMPT.format(
        event_context=request.event_context,
        duration=int(request.story_duration),
        hero=request.hero.describe(),
        story=request.story_content,
        guidelines=ILLUSTRATION_GUIDELINES.format(hero_name=request.hero.name),
        schema=RESPONSE_SCHEMA.format(source="story"),
    )


def render_chunk_prompt(chunk: Chunk, chunk_count: int, request: SceneExtractionRequest) -> str:
    return CHUNK_PROMPT.format(
        part=chunk.index + 1,
        total=chunk_count,
        event_context=request.event_context,
        duration=int(chunk.duration_sec),
        hero=request.hero.describe(),
        story=chunk.text,
        position_notes=_position_notes(chunk.index, chunk_count),
        guidelines=ILLUSTRATION_GUIDELINES.format(hero_name=request.hero.name),
        schema=RESPONSE_SCHEMA.format(source="story chunk"),
    )


def _position_notes(index: int, chunk_count: int) -> str:
    notes: list[str] = []
    if index == 0:
        notes.append(
            "IMPORTANT: This is the opening section of the story. Include a scene that establishes the hero and setting."
        )
    else:
        notes.append(
            "IMPORTANT: You are analyzing a continuation of the story. Focus on scenes in this section, "
            "but be aware this is part of a larger narrative."
        )
    if index == chunk_count - 1:
        notes.append("IMPORTANT: This is the final section of the story. Include the conclusion scenes.")
    return "\n" + "\n".join(notes) + "\n"
