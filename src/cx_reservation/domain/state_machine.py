"""Reservation status transitions.

    Current     Owner →                            Counterparty →
    pending     confirmed, rejected, fulfilled     cancelled, fulfilled
    confirmed   fulfilled, cancelled               fulfilled, cancelled
    cancelled   —                                  pending (reopen)
    rejected    —                                  —
    fulfilled   —                                  —
    expired     —                                  —

`expired` is never requested by a party; only the expiry sweeper sets it.
"""

from src.cx_common.enums import PartyRole, ReservationStatus

_S = ReservationStatus
_NONE: frozenset[ReservationStatus] = frozenset()

_TRANSITIONS: dict[tuple[ReservationStatus, PartyRole], frozenset[ReservationStatus]] = {
    (_S.PENDING, PartyRole.OWNER): frozenset({_S.CONFIRMED, _S.REJECTED, _S.FULFILLED}),
    (_S.PENDING, PartyRole.COUNTERPARTY): frozenset({_S.CANCELLED, _S.FULFILLED}),
    (_S.CONFIRMED, PartyRole.OWNER): frozenset({_S.FULFILLED, _S.CANCELLED}),
    (_S.CONFIRMED, PartyRole.COUNTERPARTY): frozenset({_S.FULFILLED, _S.CANCELLED}),
    (_S.CANCELLED, PartyRole.OWNER): _NONE,
    (_S.CANCELLED, PartyRole.COUNTERPARTY): frozenset({_S.PENDING}),
    (_S.REJECTED, PartyRole.OWNER): _NONE,
    (_S.REJECTED, PartyRole.COUNTERPARTY): _NONE,
    (_S.FULFILLED, PartyRole.OWNER): _NONE,
    (_S.FULFILLED, PartyRole.COUNTERPARTY): _NONE,
    (_S.EXPIRED, PartyRole.OWNER): _NONE,
    (_S.EXPIRED, PartyRole.COUNTERPARTY): _NONE,
}

_uncovered = [(s, r) for s in ReservationStatus for r in PartyRole if (s, r) not in _TRANSITIONS]
if _uncovered:
    raise RuntimeError(f"Reservation transition table is missing {_uncovered}")

TERMINAL_STATUSES: frozenset[ReservationStatus] = frozenset(
    s for s in ReservationStatus if not any(_TRANSITIONS[(s, r)] for r in PartyRole)
)


def allowed_transitions(status: ReservationStatus, role: PartyRole) -> frozenset[ReservationStatus]:
    return _TRANSITIONS[(ReservationStatus(status), PartyRole(role))]


def can_transition(
    status: ReservationStatus, role: PartyRole, new_status: ReservationStatus
) -> bool:
    return ReservationStatus(new_status) in allowed_transitions(status, role)


def party_role(owner_user_id: int, counterparty_user_id: int, actor_user_id: int) -> PartyRole | None:
    if actor_user_id == owner_user_id:
        return PartyRole.OWNER
    if actor_user_id == counterparty_user_id:
        return PartyRole.COUNTERPARTY
    return None
