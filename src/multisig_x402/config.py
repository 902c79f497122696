"""Options for :class:`~multisig_x402.client.X402MultiSig`."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import find_dotenv, load_dotenv

from .constants import (
    DEFAULT_DISPLAY_NAME,
    DEFAULT_HOSTS,
    DEFAULT_IDENTITY_DIR,
    DEFAULT_IDENTITY_NAME,
    DEFAULT_NETWORK,
    DEFAULT_REGISTER_CANISTER_ID,
)
from .errors import ValidationError
from .identity import INTEGRITY_FAIL, INTEGRITY_WARN

ENV_VARS: Dict[str, str] = {
    "x402_canister_id": "X402_CANISTER_ID",
    "register_canister_id": "X402_REGISTER_CANISTER_ID",
    "identity_name": "X402_IDENTITY_NAME",
    "identity_dir": "X402_IDENTITY_DIR",
    "network": "X402_NETWORK",
    "host": "X402_HOST",
    "display_name": "X402_DISPLAY_NAME",
    "username": "X402_USERNAME",
    "integrity_policy": "X402_INTEGRITY_POLICY",
}

_CAMEL_KEYS = {
    "x402CanisterId": "x402_canister_id",
    "registerCanisterId": "register_canister_id",
    "identityName": "identity_name",
    "identityDir": "identity_dir",
    "displayName": "display_name",
    "integrityPolicy": "integrity_policy",
}


@dataclass
class X402MultiSigOptions:
    """Connection and identity settings.

    Only ``x402_canister_id`` is required; :meth:`resolve` fills in the rest.
    ``host`` defaults from ``network`` and ``identity_dir`` from the current
    working directory.
    """

    x402_canister_id: str
    register_canister_id: Optional[str] = None
    identity_name: Optional[str] = None
    identity_dir: Optional[str] = None
    network: Optional[str] = None
    host: Optional[str] = None
    display_name: Optional[str] = None
    username: Optional[str] = None
    integrity_policy: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "X402MultiSigOptions":
        names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            key = _CAMEL_KEYS.get(key, key)
            if key in names:
                kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def from_env(cls, dotenv: bool = True, **overrides: Any) -> "X402MultiSigOptions":
        """Read options from ``X402_*`` environment variables.

        A ``.env`` file in the working directory is loaded first unless
        ``dotenv`` is false. Keyword ``overrides`` win over the environment.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        values: Dict[str, Any] = {}
        for name, env_name in ENV_VARS.items():
            value = os.getenv(env_name)
            if value is not None and value.strip():
                values[name] = value.strip()
        values.update({k: v for k, v in overrides.items() if v is not None})
        if not values.get("x402_canister_id"):
            raise ValidationError(
                "x402_canister_id", None, "X402_CANISTER_ID must be set to the multisig canister id"
            )
        return cls(**values)

    def resolve(self) -> "X402MultiSigOptions":
        """Return a copy with every default applied and checked."""
        if not self.x402_canister_id or not self.x402_canister_id.strip():
            raise ValidationError(
                "x402_canister_id", self.x402_canister_id, "X402 canister id is required"
            )

        network = self.network or DEFAULT_NETWORK
        if network not in DEFAULT_HOSTS:
            raise ValidationError(
                "network", network, f"network must be one of: {', '.join(DEFAULT_HOSTS)}"
            )
        policy = self.integrity_policy or INTEGRITY_FAIL
        if policy not in (INTEGRITY_FAIL, INTEGRITY_WARN):
            raise ValidationError(
                "integrity_policy",
                policy,
                f"integrity policy must be {INTEGRITY_FAIL!r} or {INTEGRITY_WARN!r}",
            )

        return replace(
            self,
            x402_canister_id=self.x402_canister_id.strip(),
            register_canister_id=self.register_canister_id or DEFAULT_REGISTER_CANISTER_ID,
            identity_name=self.identity_name or DEFAULT_IDENTITY_NAME,
            identity_dir=self.identity_dir or str(Path.cwd() / DEFAULT_IDENTITY_DIR),
            network=network,
            host=self.host or DEFAULT_HOSTS[network],
            display_name=self.display_name or DEFAULT_DISPLAY_NAME,
            integrity_policy=policy,
        )


OptionsLike = Union[X402MultiSigOptions, Mapping[str, Any]]


def coerce_options(options: OptionsLike) -> X402MultiSigOptions:
    if isinstance(options, X402MultiSigOptions):
        return options
    if isinstance(options, Mapping):
        return X402MultiSigOptions.from_mapping(options)
    raise TypeError("options must be X402MultiSigOptions or a mapping")
