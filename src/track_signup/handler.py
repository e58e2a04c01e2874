"""
Track Signup Handler

Receives a signup event from the frontend (the _fprom_tid cookie plus an
email and/or uid in the JSON body) and forwards it to FirstPromoter's
track/signup API. The FirstPromoter response is relayed back to the caller.

One outbound attempt per invocation; failures are reported, never retried.
"""

from typing import Any, Callable, Optional

from pydantic import ValidationError

from common.base_handler import BaseLambdaHandler
from common.config import (
    CredentialsProvider,
    FirstPromoterCredentials,
    get_credentials_provider,
)
from common.exceptions import (
    FirstPromoterException,
    InvalidRequestBody,
    MethodNotAllowed,
    MissingIdentity,
    MissingTrackingCookie,
    UnknownFailure,
)
from common.firstpromoter_client import FirstPromoterClient, get_firstpromoter_client
from common.models import SignupRequest

TRACKING_COOKIE = "_fprom_tid"
SUCCESS_MESSAGE = "Signup tracked successfully with FirstPromoter."


class TrackSignupHandler(BaseLambdaHandler):
    """Forwards frontend signups to FirstPromoter"""

    def __init__(
        self,
        credentials_provider: Optional[CredentialsProvider] = None,
        client_factory: Optional[
            Callable[[FirstPromoterCredentials], FirstPromoterClient]
        ] = None,
    ):
        super().__init__()
        self._credentials_provider = credentials_provider
        self.client_factory = client_factory or get_firstpromoter_client

    @property
    def credentials_provider(self) -> CredentialsProvider:
        """Lazy initialization of the credentials provider"""
        if self._credentials_provider is None:
            self._credentials_provider = get_credentials_provider()
        return self._credentials_provider

    def _execute(self, event: dict, context: Any) -> dict:
        """
        Validate the signup, forward it, relay the outcome.

        Args:
            event: API Gateway event
            context: Lambda context

        Returns:
            HTTP 200 with the FirstPromoter response, or raises a
            SignupTrackingException reported by the base handler
        """
        if self._get_method(event) != "POST":
            raise MethodNotAllowed("Only POST requests are supported.")

        signup = self._parse_signup(event)

        # Credentials are resolved only for valid requests
        credentials = self.credentials_provider.get_credentials()

        payload = signup.to_tracking_payload().to_request_body()
        self.logger.info(
            f"Tracking signup (email={'email' in payload}, uid={'uid' in payload})"
        )

        client = None
        try:
            client = self.client_factory(credentials)
            upstream = client.track_signup(payload)
        except FirstPromoterException:
            raise
        except Exception as e:
            self.logger.error(f"Generic error calling FirstPromoter API: {e}", exc_info=True)
            raise UnknownFailure(str(e) or "An unknown error occurred.") from e
        finally:
            if client is not None:
                client.close()

        return self._success_response(
            {
                "success": True,
                "message": SUCCESS_MESSAGE,
                "firstPromoterResponse": upstream,
            }
        )

    def _parse_signup(self, event: dict) -> SignupRequest:
        """Build the inbound signup from cookie and body"""
        tid = self._get_cookie(event, TRACKING_COOKIE)
        if not tid:
            raise MissingTrackingCookie(
                "Missing _fprom_tid cookie. Ensure your frontend sends cookies."
            )

        body = self._parse_body(event)
        if not isinstance(body, dict):
            raise InvalidRequestBody("Request body must be a JSON object.")

        try:
            signup = SignupRequest(
                tid=tid, email=body.get("email"), uid=body.get("uid")
            )
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
            raise InvalidRequestBody(
                f"Invalid value for {fields or 'request body'}; expected a string."
            ) from e

        if not signup.has_identity:
            raise MissingIdentity("Missing email or uid in request body.")

        return signup


def lambda_handler(event: dict, context: Any) -> dict:
    """Lambda entry point"""
    return TrackSignupHandler().handle(event, context)
