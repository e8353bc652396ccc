"""
Bridge Configurator

Assembles the immutable BridgeConfig handed to the bridge service at
startup. Rules are kept verbatim; matcher syntax is only looked at when a
message is matched.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from webserver.configs.constants import (
    DEFAULT_AUTH_ADDRESS,
    DEFAULT_AUTH_TIMEOUT_MILLIS,
    DEFAULT_BRIDGE_PREFIX,
)
from webserver.configs.logging import get_logger
from webserver.exceptions import ConfigurationError

logger = get_logger("bridge.config")


@dataclass(frozen=True)
class BridgeRule:
    """One permitted-message matcher.

    Recognized keys of the raw mapping: ``address``, ``address_re``,
    ``match`` and ``requires_auth``. Unknown keys are carried along.
    """

    raw: Mapping[str, Any]

    @property
    def address(self) -> Optional[str]:
        return self.raw.get("address")

    @property
    def address_re(self) -> Optional[str]:
        return self.raw.get("address_re")

    @property
    def match(self) -> Optional[Mapping[str, Any]]:
        return self.raw.get("match")

    @property
    def requires_auth(self) -> bool:
        return bool(self.raw.get("requires_auth", False))


@dataclass(frozen=True)
class BridgeConfig:
    """Permitted rule sets and auth policy for the event bus bridge."""

    inbound_rules: tuple[BridgeRule, ...] = ()
    outbound_rules: tuple[BridgeRule, ...] = ()
    auth_timeout_millis: int = DEFAULT_AUTH_TIMEOUT_MILLIS
    auth_address: str = DEFAULT_AUTH_ADDRESS
    prefix: str = DEFAULT_BRIDGE_PREFIX

    @property
    def auth_timeout_seconds(self) -> float:
        return self.auth_timeout_millis / 1000


def _to_rules(raw_rules: Optional[Iterable[Mapping[str, Any]]], direction: str) -> tuple[BridgeRule, ...]:
    if raw_rules is None:
        return ()
    rules = []
    for raw in raw_rules:
        if not isinstance(raw, Mapping):
            raise ConfigurationError(
                f"{direction} permitted entries must be objects",
                {"entry": repr(raw)},
            )
        rules.append(BridgeRule(raw=dict(raw)))
    return tuple(rules)


def configure(
    raw_inbound: Optional[Iterable[Mapping[str, Any]]] = None,
    raw_outbound: Optional[Iterable[Mapping[str, Any]]] = None,
    auth_timeout_millis: Optional[int] = None,
    auth_address: Optional[str] = None,
    sock_prefix: Optional[str] = None,
) -> BridgeConfig:
    """
    Build the bridge configuration, filling in defaults for absent fields.

    Args:
        raw_inbound: Rules for client -> bus traffic (absent: deny all)
        raw_outbound: Rules for bus -> client traffic (absent: deny all)
        auth_timeout_millis: How long an authorisation stays valid
        auth_address: Bus address of the authorisation responder
        sock_prefix: Path the bridge WebSocket is mounted at

    Returns:
        Immutable BridgeConfig
    """
    config = BridgeConfig(
        inbound_rules=_to_rules(raw_inbound, "inbound"),
        outbound_rules=_to_rules(raw_outbound, "outbound"),
        auth_timeout_millis=(
            DEFAULT_AUTH_TIMEOUT_MILLIS if auth_timeout_millis is None else int(auth_timeout_millis)
        ),
        auth_address=auth_address or DEFAULT_AUTH_ADDRESS,
        prefix=sock_prefix or DEFAULT_BRIDGE_PREFIX,
    )
    logger.info(
        f"Bridge configured at {config.prefix}: "
        f"{len(config.inbound_rules)} inbound, {len(config.outbound_rules)} outbound rule(s)"
    )
    return config


def bridge_config_from_options(options: Mapping[str, Any]) -> BridgeConfig:
    """Build a BridgeConfig from raw startup options."""
    sjs_config = options.get("sjs_config") or {}
    return configure(
        raw_inbound=options.get("inbound_permitted"),
        raw_outbound=options.get("outbound_permitted"),
        auth_timeout_millis=options.get("auth_timeout"),
        auth_address=options.get("auth_address"),
        sock_prefix=sjs_config.get("prefix"),
    )
