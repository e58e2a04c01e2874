"""
Base handler class implementing Template Method pattern for Lambda functions.
Provides consistent error handling, request parsing, and logging.
"""

from abc import ABC, abstractmethod
import base64
import json
import logging
import os
from typing import Any, Optional
from urllib.parse import unquote

from common.exceptions import InvalidRequestBody, SignupTrackingException


class BaseLambdaHandler(ABC):
    """
    Abstract base class for API Gateway Lambda handlers.

    Subclasses must implement _execute() method with their specific logic.
    Any SignupTrackingException raised from _execute() is reported with its
    own status and body; anything else becomes a 500.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.logger.setLevel(os.getenv("LOG_LEVEL", "INFO"))

    def handle(self, event: dict, context: Any) -> dict:
        """
        Main entry point for Lambda handler (Template Method).

        Args:
            event: API Gateway proxy event (v1 or v2 payload)
            context: Lambda context

        Returns:
            HTTP response dict with statusCode, headers and body
        """
        try:
            self.logger.info(
                f"Received {self._get_method(event) or 'UNKNOWN'} "
                f"{self._get_path(event) or '/'}"
            )
            result = self._execute(event, context)
            self.logger.info("Handler completed successfully")
            return result
        except SignupTrackingException as e:
            self.logger.warning(f"{e.kind}: {e}")
            return self._error_response(e.to_body(), e.status_code, e)
        except Exception as e:
            self.logger.error(f"Handler error: {e}", exc_info=True)
            return self._error_response(
                {"message": "Internal Server Error", "error": str(e)}, 500
            )

    @abstractmethod
    def _execute(self, event: dict, context: Any) -> dict:
        """
        Subclasses implement their specific business logic here.

        Args:
            event: API Gateway proxy event
            context: Lambda context

        Returns:
            HTTP response dict
        """
        pass

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": "*",
        }

    def _success_response(self, data: Any, status_code: int = 200) -> dict:
        """Standard success response format"""
        return {
            "statusCode": status_code,
            "headers": self._headers(),
            "body": json.dumps(data, default=str),
        }

    def _error_response(
        self,
        body: dict,
        status_code: int,
        exc: Optional[SignupTrackingException] = None,
    ) -> dict:
        """Standard error response format"""
        headers = self._headers()
        if exc is not None and exc.status_code == 405:
            headers["Allow"] = "POST"
        return {
            "statusCode": status_code,
            "headers": headers,
            "body": json.dumps(body, default=str),
        }

    # ------------------------------------------------------------------
    # Request parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _get_method(event: dict) -> Optional[str]:
        """HTTP method for REST (v1) and HTTP API (v2) payloads"""
        method = event.get("httpMethod")
        if not method:
            http = (event.get("requestContext") or {}).get("http") or {}
            method = http.get("method")
        return method.upper() if method else None

    @staticmethod
    def _get_path(event: dict) -> Optional[str]:
        return event.get("path") or event.get("rawPath")

    @staticmethod
    def _get_cookie(event: dict, name: str) -> Optional[str]:
        """
        Look up a cookie by name.

        HTTP API (v2) events carry a ``cookies`` list; REST (v1) events only
        have the raw Cookie header, possibly split across multiValueHeaders.
        """
        raw = list(event.get("cookies") or [])
        for key, value in (event.get("headers") or {}).items():
            if key.lower() == "cookie" and value:
                raw.append(value)
        for key, values in (event.get("multiValueHeaders") or {}).items():
            if key.lower() == "cookie":
                raw.extend(v for v in values or [] if v)

        # Each piece stands alone; first occurrence wins
        for header in raw:
            for piece in header.split(";"):
                key, sep, value = piece.partition("=")
                if not sep or key.strip() != name:
                    continue
                value = value.strip()
                if len(value) >= 2 and value[0] == value[-1] == '"':
                    value = value[1:-1]
                return unquote(value) or None
        return None

    def _parse_body(self, event: dict) -> Any:
        """Parse JSON body handling base64 encoding"""
        body = event.get("body") or ""

        if isinstance(body, str) and event.get("isBase64Encoded"):
            try:
                body = base64.b64decode(body, validate=True).decode("utf-8")
            except (ValueError, UnicodeDecodeError) as e:
                raise InvalidRequestBody(f"Request body could not be decoded: {e}")

        if isinstance(body, str):
            if body:  # Only parse non-empty strings
                try:
                    parsed = json.loads(body)
                except json.JSONDecodeError as e:
                    raise InvalidRequestBody(f"Request body must be valid JSON: {e}")
                # null, false, 0 and "" read as an empty body
                if not parsed and not isinstance(parsed, list):
                    return {}
                return parsed
            return {}

        return body
