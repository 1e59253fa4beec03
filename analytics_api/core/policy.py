"""
Failure policies for external collaborators.

Each collaborator class exposes a `failure_policy` attribute naming what
happens to a request when that collaborator errors or times out.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    # Treat the failed check as a pass (quota gate)
    ALLOW = "allow"
    # Carry on with the derived fields set to null (geo lookup)
    DEGRADE = "degrade"
    # Log and ignore; the response is already decided (real-time notify)
    SWALLOW = "swallow"
    # Fail the request with a server error (event store, translator)
    SURFACE = "surface"
