from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from azure.communication.identity import CommunicationTokenScope
from azure.communication.identity.aio import CommunicationIdentityClient
from azure.communication.sms.aio import SmsClient
from azure.core.exceptions import AzureError

from .config import CommunicationConfig
from .errors import InvalidRequest, ProviderError
from .logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class VoiceToken:
    user_id: str
    token: str
    expires_on: str


@dataclass
class SmsResult:
    successful: bool
    message_id: str
    error_message: str = ""


def _format_expiry(value: Any) -> str:
    if isinstance(value, dt.datetime):
        return value.isoformat()
    if isinstance(value, (int, float)):
        return dt.datetime.fromtimestamp(value, tz=dt.timezone.utc).isoformat()
    return str(value)


class CommunicationService:
    """Azure Communication Services: VoIP identities/tokens and outbound SMS."""

    def __init__(
        self,
        cfg: CommunicationConfig,
        identity_client_factory: Optional[Callable[[str], Any]] = None,
        sms_client_factory: Optional[Callable[[str], Any]] = None,
    ):
        self._cfg = cfg
        self._identity_factory = identity_client_factory or CommunicationIdentityClient.from_connection_string
        self._sms_factory = sms_client_factory or SmsClient.from_connection_string
        self._scopes: List[CommunicationTokenScope] = [CommunicationTokenScope(s) for s in cfg.token_scopes]

    async def issue_voice_token(self) -> VoiceToken:
        try:
            async with self._identity_factory(self._cfg.connection_string) as client:
                user = await client.create_user()
                access_token = await client.get_token(user, scopes=self._scopes)
        except (AzureError, ValueError) as exc:
            raise ProviderError(f"Token issuance failed: {exc}") from exc
        user_id = user.properties["id"]
        logger.info("acs_token_issued", user_id=user_id)
        return VoiceToken(
            user_id=user_id,
            token=access_token.token,
            expires_on=_format_expiry(access_token.expires_on),
        )

    async def send_sms(self, message: str | None, to_phone: str | None) -> SmsResult:
        if not message or not to_phone:
            raise InvalidRequest("Message and toPhone must be provided!")
        try:
            async with self._sms_factory(self._cfg.connection_string) as client:
                results = await client.send(
                    from_=self._cfg.phone_number,
                    to=[to_phone],
                    message=message,
                )
        except (AzureError, ValueError) as exc:
            raise ProviderError(str(exc)) from exc
        if not results:
            raise ProviderError("SMS provider returned no send result")
        result = results[0]
        logger.info(
            "sms_sent",
            message_id=result.message_id,
            successful=result.successful,
            status_code=result.http_status_code,
        )
        return SmsResult(
            successful=bool(result.successful),
            message_id=result.message_id or "",
            error_message=result.error_message or "",
        )


__all__ = ["CommunicationService", "SmsResult", "VoiceToken"]
