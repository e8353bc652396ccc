"""
Event bus bridge: configuration, rule matching and the WebSocket relay.
"""

from webserver.bridge.config import BridgeConfig, BridgeRule, bridge_config_from_options, configure
from webserver.bridge.eventbus import EventBus, LocalEventBus, Message
from webserver.bridge.rules import find_permitting_rule, rule_matches
from webserver.bridge.service import EventBusBridge

__all__ = [
    "BridgeConfig",
    "BridgeRule",
    "EventBus",
    "EventBusBridge",
    "LocalEventBus",
    "Message",
    "bridge_config_from_options",
    "configure",
    "find_permitting_rule",
    "rule_matches",
]
