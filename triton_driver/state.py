"""Mapping from Triton instance states to abstract lifecycle states."""

from __future__ import annotations

from typing import Dict

from triton_driver.exceptions import UnknownStateError
from triton_driver.models import LifecycleState

# https://github.com/joyent/smartos-live/blob/master/src/vm/man/vmadm.1m.md#vm-states
STATE_MAP: Dict[str, LifecycleState] = {
    "configured": LifecycleState.STARTING,
    "provisioning": LifecycleState.STARTING,
    "failed": LifecycleState.ERROR,
    "receiving": LifecycleState.ERROR,
    "running": LifecycleState.RUNNING,
    "shutting_down": LifecycleState.STOPPING,
    "stopping": LifecycleState.STOPPING,
    "down": LifecycleState.STOPPED,
    "stopped": LifecycleState.STOPPED,
}


def map_state(state_string: str) -> LifecycleState:
    """Return the lifecycle state for a remote state string.

    Strings outside the known vocabulary raise :class:`UnknownStateError`,
    whose ``state`` is ``ERROR``.
    """
    try:
        return STATE_MAP[state_string]
    except KeyError:
        raise UnknownStateError(state_string) from None
