from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any, Dict

from storyscenes.extraction.model import ValidationError


_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
}


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: Dict[str, Any] | None = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "headers": {**_CORS_HEADERS, "Content-Type": "application/json"},
            "body": json.dumps(self.body or {}),
        }


class HttpRequestParser:
    """Extracts the payload from API Gateway proxy events."""

    def parse(self, event: Dict[str, Any]) -> Dict[str, Any]:
        if "body" not in event or event["body"] is None:
            raise ValidationError("Missing request body")

        body = event["body"]
        if event.get("isBase64Encoded"):
            body = base64.b64decode(body).decode("utf-8")

        if isinstance(body, str):
            try:
                body = json.loads(body)
            except json.JSONDecodeError as exc:
                raise ValidationError("Body must be valid JSON") from exc

        if isinstance(body, dict):
            return body

        raise ValidationError("Body must be a JSON object")


def cors_preflight_response() -> Dict[str, Any]:
    return {
        "statusCode": 204,
        "headers": {
            **_CORS_HEADERS,
            "Access-Control-Allow-Methods": "POST,OPTIONS",
        },
        "body": "",
    }


def ok(body: Dict[str, Any]) -> Dict[str, Any]:
    return HttpResponse(status_code=200, body=body).to_payload()


def error(status_code: int, message: str) -> Dict[str, Any]:
    return HttpResponse(status_code=status_code, body={"error": message}).to_payload()


def bad_request(message: str) -> Dict[str, Any]:
    return error(400, message)


def server_error(message: str = "Internal server error") -> Dict[str, Any]:
    return error(500, message)


def bad_gateway(message: str) -> Dict[str, Any]:
    return error(502, message)


def service_unavailable(message: str) -> Dict[str, Any]:
    return error(503, message)


def gateway_timeout(message: str) -> Dict[str, Any]:
    return error(504, message)
