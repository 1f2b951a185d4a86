from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import ExtractionConfig
from .control import CancelToken, PipelineCancelled
from .extraction.engine import SceneExtractionEngine, SceneExtractionFailed
from .extraction.llm import ServiceUnavailableError
from .extraction.model import SceneExtractionRequest, ValidationError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract illustratable scenes from a narrated story."
    )
    parser.add_argument("story", type=Path, help="Path to the story text file")
    parser.add_argument(
        "--duration",
        type=float,
        required=True,
        help="Total narration duration in seconds",
    )
    parser.add_argument(
        "--hero",
        type=Path,
        required=True,
        help="Path to a JSON file describing the hero (name, primaryTrait, ...)",
    )
    parser.add_argument("--context", required=True, help="Thematic context of the story")
    parser.add_argument(
        "--config",
        type=Path,
        help="Optional path to extraction configuration JSON/YAML",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the scene list JSON here instead of stdout",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Abort remaining work after this many seconds and keep the partial result",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = ExtractionConfig.from_file(args.config) if args.config else ExtractionConfig()
    payload = {
        "storyContent": args.story.read_text(encoding="utf-8"),
        "storyDuration": args.duration,
        "hero": json.loads(args.hero.read_text(encoding="utf-8")),
        "eventContext": args.context,
    }

    try:
        request = SceneExtractionRequest.from_payload(payload)
        engine = SceneExtractionEngine.default(config)
        result = engine.extract(request, CancelToken(args.timeout))
    except (ValidationError, ServiceUnavailableError, SceneExtractionFailed, PipelineCancelled) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    output = json.dumps(result.to_response(), indent=2, ensure_ascii=False)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(output + "\n", encoding="utf-8")
        print(f"Wrote {result.scene_count} scenes to {args.output}")
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
