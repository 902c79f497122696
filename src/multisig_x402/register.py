"""Client for the user directory (register) canister."""

from __future__ import annotations

import logging
from typing import Optional, Union

from ic.principal import Principal

from .agent import AgentClient
from .errors import RegistrationError, ValidationError
from .idl import REGISTER_INTERFACE, unwrap_opt, variant_tag
from .models import UserRecord

logger = logging.getLogger(__name__)


class RegisterClient:
    def __init__(self, agent_client: AgentClient, canister_id: str) -> None:
        if not canister_id or not canister_id.strip() or canister_id == "default":
            raise ValidationError(
                "register_canister_id",
                canister_id,
                'Register canister id cannot be empty or "default"',
            )
        self._agent_client = agent_client
        self.canister_id = canister_id.strip()
        logger.debug("Register client targets canister %s", self.canister_id)

    async def register_user(
        self,
        username: str,
        display_name: str,
        principal: Union[str, Principal],
    ) -> UserRecord:
        """Register ``principal`` under ``username``.

        The canister answers ``Ok(User)`` or ``Err(text)``; the latter (a
        taken username or an already registered principal) raises
        :class:`RegistrationError`.
        """
        principal_id = principal if isinstance(principal, str) else principal.to_str()
        logger.info("Registering user %s (%s) as %s", username, display_name, principal_id)

        result = await self._agent_client.call_update(
            self.canister_id,
            "register_ii_user",
            [username, display_name, principal_id],
            REGISTER_INTERFACE,
        )
        try:
            tag, payload = variant_tag(result, ("Ok", "Err"))
        except ValueError as exc:
            raise RegistrationError("Unknown return result format") from exc

        if tag == "Ok":
            logger.info("User %s registered", username)
            return UserRecord.from_candid(payload)
        if tag == "Err":
            raise RegistrationError(f"Registration failed: {payload}")
        raise RegistrationError("Unknown return result format")

    async def is_username_taken(self, username: str) -> bool:
        taken = await self._agent_client.call_query(
            self.canister_id,
            "is_username_taken",
            [username],
            REGISTER_INTERFACE,
            silent=True,
        )
        return bool(taken)

    async def get_user(self, username: str) -> Optional[UserRecord]:
        value = unwrap_opt(
            await self._agent_client.call_query(
                self.canister_id, "get_user", [username], REGISTER_INTERFACE
            )
        )
        if value is None:
            return None
        return UserRecord.from_candid(value)
