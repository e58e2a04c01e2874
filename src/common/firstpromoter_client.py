"""
FirstPromoter API client for referral signup tracking.

Authentication uses a bearer API token plus the Account-ID header.
Every failure is raised as a typed FirstPromoterException so callers can
report it without inspecting requests internals.
"""

import json
import logging
from typing import Any, Optional

import requests

from common.config import FirstPromoterCredentials
from common.exceptions import (
    RequestSetupFailed,
    UnknownFailure,
    UpstreamRejected,
    UpstreamUnreachable,
)

logger = logging.getLogger(__name__)

FIRSTPROMOTER_API_BASE = "https://v2.firstpromoter.com/api/v2"
TRACK_SIGNUP_URL = f"{FIRSTPROMOTER_API_BASE}/track/signup"


class FirstPromoterClient:
    """
    Client for the FirstPromoter v2 tracking API.

    One delivery attempt per call: no retries, no timeout override.
    """

    def __init__(self, api_token: str, account_id: str, base_url: Optional[str] = None):
        if not api_token or not account_id:
            raise ValueError("FirstPromoter API token and account id are required")

        self.base_url = base_url or FIRSTPROMOTER_API_BASE
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_token}",
                "Account-ID": account_id,
            }
        )

    def track_signup(self, payload: dict) -> Any:
        """
        Report a signup to FirstPromoter.

        Args:
            payload: Request body with tid and at least one of email/uid

        Returns:
            Decoded upstream response body

        Raises:
            UpstreamRejected: FirstPromoter answered with a non-2xx status
            UpstreamUnreachable: No response was received
            RequestSetupFailed: The request could not be built or sent
            UnknownFailure: Anything else
        """
        url = f"{self.base_url}/track/signup"

        try:
            response = self.session.post(url, json=payload)
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error(
                "Error calling FirstPromoter API: no response received. %s", e
            )
            raise UpstreamUnreachable("No response from FirstPromoter API.") from e
        except requests.RequestException as e:
            logger.error("Error setting up FirstPromoter API request: %s", e)
            raise RequestSetupFailed(f"Request setup error: {e}") from e
        except Exception as e:
            logger.error("Unexpected error calling FirstPromoter API: %s", e)
            raise UnknownFailure(str(e) or "An unknown error occurred.") from e

        data = self._decode(response)

        if not 200 <= response.status_code < 300:
            logger.error(
                "FirstPromoter API returned %s: %s", response.status_code, data
            )
            raise UpstreamRejected(
                self._error_message(data, response.status_code),
                status_code=response.status_code,
                response_body=data,
            )

        logger.info("FirstPromoter API success response: %s", json.dumps(data, default=str))
        return data

    def close(self):
        """Release pooled connections held by the session"""
        self.session.close()

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        """JSON body when there is one, raw text otherwise, None when empty"""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _error_message(data: Any, status_code: int) -> str:
        """Upstream message field, else the serialised body"""
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        if data is None:
            return f"FirstPromoter API returned HTTP {status_code}."
        if isinstance(data, str):
            return data
        return json.dumps(data, default=str)


def get_firstpromoter_client(credentials: FirstPromoterCredentials) -> FirstPromoterClient:
    """Factory function for creating a FirstPromoter client."""
    return FirstPromoterClient(credentials.api_token, credentials.account_id)
