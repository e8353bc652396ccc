"""
Permitted-message matching.

A message crosses the bridge only if some rule in the relevant direction
matches it. Rules are tried in order; the first match wins. No match, or
an empty rule set, denies.
"""

import re
from typing import Any, Iterable, Optional

from webserver.bridge.config import BridgeRule
from webserver.configs.logging import get_logger

logger = get_logger("bridge.rules")


def rule_matches(rule: BridgeRule, address: str, body: Any) -> bool:
    """
    Check a single rule against a message.

    ``address`` must be equal, ``address_re`` must match the whole address,
    and every field of ``match`` must equal the same field of the body.
    A rule with none of these keys matches everything.
    """
    if rule.address is not None and rule.address != address:
        return False

    if rule.address_re is not None:
        try:
            if re.fullmatch(rule.address_re, address) is None:
                return False
        except (re.error, TypeError) as e:
            logger.warning(f"Ignoring rule with bad address_re {rule.address_re!r}: {e}")
            return False

    if rule.match:
        if not isinstance(body, dict):
            return False
        for key, expected in rule.match.items():
            if key not in body or body[key] != expected:
                return False

    return True


def find_permitting_rule(rules: Iterable[BridgeRule], address: str, body: Any) -> Optional[BridgeRule]:
    """Return the first rule matching the message, or None if it is denied."""
    for rule in rules:
        if rule_matches(rule, address, body):
            return rule
    return None
