from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from storyscenes.api.http import (
    HttpRequestParser,
    bad_gateway,
    bad_request,
    cors_preflight_response,
    gateway_timeout,
    ok,
    server_error,
    service_unavailable,
)
from storyscenes.config import ExtractionConfig
from storyscenes.control import CancelToken, PipelineCancelled
from storyscenes.extraction.engine import SceneExtractionEngine, SceneExtractionFailed
from storyscenes.extraction.llm import ServiceUnavailableError
from storyscenes.extraction.model import SceneExtractionRequest, ValidationError
from storyscenes.ssm import hydrate_api_keys
from storyscenes.tokenizer.counter import TokenizerResourceError

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


@dataclass(frozen=True)
class HandlerSettings:
    config_path: Path | None = None
    request_deadline_sec: Optional[float] = None
    openai_api_key_parameter: Optional[str] = None
    anthropic_api_key_parameter: Optional[str] = None

    @classmethod
    def from_env(cls) -> "HandlerSettings":
        deadline = os.environ.get("REQUEST_DEADLINE_SEC")
        return cls(
            config_path=Path(os.environ["EXTRACTION_CONFIG_PATH"])
            if "EXTRACTION_CONFIG_PATH" in os.environ
            else None,
            request_deadline_sec=float(deadline) if deadline else None,
            openai_api_key_parameter=os.environ.get("OPENAI_API_KEY_PARAMETER"),
            anthropic_api_key_parameter=os.environ.get("ANTHROPIC_API_KEY_PARAMETER"),
        )

    def api_key_parameters(self) -> Dict[str, Optional[str]]:
        return {
            "OPENAI_API_KEY": self.openai_api_key_parameter,
            "ANTHROPIC_API_KEY": self.anthropic_api_key_parameter,
        }

    def load_config(self) -> ExtractionConfig:
        if self.config_path:
            return ExtractionConfig.from_file(self.config_path)
        return ExtractionConfig()


class SceneExtractionApplication:
    """Coordinates request parsing, validation, and scene extraction."""

    def __init__(
        self,
        engine: SceneExtractionEngine | None = None,
        config: ExtractionConfig | None = None,
        request_parser: HttpRequestParser | None = None,
        request_deadline_sec: float | None = None,
    ) -> None:
        self._engine = engine
        self._config = config or ExtractionConfig()
        self._parser = request_parser or HttpRequestParser()
        self._deadline = request_deadline_sec

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("Scene extraction event received")
        if event.get("httpMethod") == "OPTIONS":
            return cors_preflight_response()

        try:
            engine = self._resolve_engine()
        except ServiceUnavailableError as exc:
            logger.error("Inference service unavailable: %s", exc)
            return service_unavailable(str(exc))

        try:
            payload = self._parser.parse(event)
            request = SceneExtractionRequest.from_payload(payload)
        except ValidationError as exc:
            return bad_request(str(exc))

        try:
            result = engine.extract(request, CancelToken(self._deadline))
        except SceneExtractionFailed as exc:
            logger.error("Scene extraction failed: %s", exc)
            return bad_gateway(str(exc))
        except PipelineCancelled:
            return gateway_timeout("Scene extraction timed out")
        except TokenizerResourceError:
            logger.exception("Tokenizer unavailable")
            return server_error()
        except Exception:
            logger.exception("Scene extraction error")
            return server_error()

        return ok(result.to_response())

    def _resolve_engine(self) -> SceneExtractionEngine:
        if self._engine is None:
            self._engine = SceneExtractionEngine.default(self._config)
        return self._engine


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:  # pragma: no cover - AWS entry
    settings = HandlerSettings.from_env()
    hydrate_api_keys(settings.api_key_parameters())
    app = SceneExtractionApplication(
        config=settings.load_config(),
        request_deadline_sec=settings.request_deadline_sec,
    )
    return app.handle_event(event)
