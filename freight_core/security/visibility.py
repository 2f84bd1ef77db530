"""
Visibility decisions for a single record.

Invisible and Forbidden are different answers:

* INVISIBLE: respond exactly like a non-existent id (404). Used for every
  read or write of a private record the caller has no ownership relation to,
  so resource ids cannot be enumerated.
* FORBIDDEN: the record's existence is already public (it is listed on the
  marketplace for this caller) but the caller may not change it (403).
"""

from __future__ import annotations

from enum import Enum

from freight_core.security.capability import CapabilitySet


class Action(str, Enum):
    READ = "READ"
    WRITE = "WRITE"


class Exposure(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class VisibilityDecision(str, Enum):
    PERMITTED = "PERMITTED"
    INVISIBLE = "INVISIBLE"
    FORBIDDEN = "FORBIDDEN"


def decide(capabilities: CapabilitySet, action: Action, exposure: Exposure = Exposure.PRIVATE) -> VisibilityDecision:
    if capabilities.is_admin:
        return VisibilityDecision.PERMITTED
    if capabilities.has_access:
        return VisibilityDecision.PERMITTED
    if exposure is Exposure.PUBLIC:
        if action is Action.READ:
            return VisibilityDecision.PERMITTED
        return VisibilityDecision.FORBIDDEN
    return VisibilityDecision.INVISIBLE
