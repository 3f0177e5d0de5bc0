"""Asset status state machine.

Pure definitions: no I/O. The registry evaluates these against stored rows
and applies the resulting field changes with a conditional update.

    AVAILABLE ──assign──────────▶ ASSIGNED
    AVAILABLE ──transfer_initiate▶ IN_TRANSIT ──transfer_complete──▶ AVAILABLE
    AVAILABLE | ASSIGNED | IN_TRANSIT ──expend──▶ EXPENDED (terminal)
"""

import enum
from dataclasses import dataclass, field

from armory_engine.common.exceptions import (
    InvalidStateError,
    PermissionDeniedError,
    ValidationError,
)
from armory_engine.common.results import Err, Ok, Result


class AssetStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    ASSIGNED = "ASSIGNED"
    EXPENDED = "EXPENDED"
    IN_TRANSIT = "IN_TRANSIT"


class AssetType(str, enum.Enum):
    VEHICLE = "VEHICLE"
    WEAPON = "WEAPON"
    AMMUNITION = "AMMUNITION"
    OTHER = "OTHER"


INITIAL_STATUS = AssetStatus.AVAILABLE
TERMINAL_STATUSES = frozenset({AssetStatus.EXPENDED})


@dataclass(frozen=True)
class Transition:
    name: str
    from_states: frozenset[AssetStatus]
    to_state: AssetStatus
    allowed_roles: frozenset[str] | None = None
    required_params: tuple[str, ...] = field(default=())


ASSIGN = Transition(
    name="assign",
    from_states=frozenset({AssetStatus.AVAILABLE}),
    to_state=AssetStatus.ASSIGNED,
    required_params=("assigned_to_id",),
)
EXPEND = Transition(
    name="expend",
    from_states=frozenset({
        AssetStatus.AVAILABLE, AssetStatus.ASSIGNED, AssetStatus.IN_TRANSIT,
    }),
    to_state=AssetStatus.EXPENDED,
    allowed_roles=frozenset({"ADMIN", "BASE_COMMANDER"}),
)
TRANSFER_INITIATE = Transition(
    name="transfer_initiate",
    from_states=frozenset({AssetStatus.AVAILABLE}),
    to_state=AssetStatus.IN_TRANSIT,
    required_params=("base_id",),
)
TRANSFER_COMPLETE = Transition(
    name="transfer_complete",
    from_states=frozenset({AssetStatus.IN_TRANSIT}),
    to_state=AssetStatus.AVAILABLE,
)

TRANSITIONS: dict[str, Transition] = {
    t.name: t for t in (ASSIGN, EXPEND, TRANSFER_INITIATE, TRANSFER_COMPLETE)
}


def check_transition(
    transition: Transition,
    current: str,
    role: str | None = None,
    params: dict | None = None,
) -> Result[dict]:
    """Evaluate a transition against the current status.

    Returns the column values to write on success.
    """
    params = params or {}
    try:
        status = AssetStatus(current)
    except ValueError:
        return Err(InvalidStateError(f"Unknown asset status '{current}'"))

    if status not in transition.from_states:
        return Err(InvalidStateError(
            f"Cannot {transition.name} asset in {status.value} status"
        ))
    if transition.allowed_roles is not None and role not in transition.allowed_roles:
        return Err(PermissionDeniedError(
            f"Role {role} may not {transition.name} assets"
        ))
    missing = [p for p in transition.required_params if not params.get(p)]
    if missing:
        return Err(ValidationError(
            f"{transition.name} requires {', '.join(missing)}"
        ))

    values = {"status": transition.to_state.value}
    for p in transition.required_params:
        values[p] = params[p]
    return Ok(values)


def allowed_targets(current: str) -> set[AssetStatus]:
    """States reachable from ``current`` in one step."""
    return {
        t.to_state for t in TRANSITIONS.values()
        if AssetStatus(current) in t.from_states
    }
