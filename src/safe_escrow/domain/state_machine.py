"""Safe transaction progress model.

A record does not persist its step; the step is derived from four raw fields
(deposit_confirmed, shipping_confirmed, delivery_confirmed, settlement_status)
in a fixed priority order where every later rule overrides the earlier ones:

    default                                   -> AwaitingDeposit     0.0
    deposit_confirmed                         -> PreparingShipment   0.2
    shipping_confirmed                        -> InTransit           0.4
    delivery_confirmed                        -> AwaitingSettlement  0.6
    settlement_status == READY_FOR_SETTLEMENT -> SettlementReady     0.8
    settlement_status == SETTLED              -> Settled             1.0

The workflow only sets flags to True and only moves settlement_status to
SETTLED, so the derived progress never decreases.

EscrowStateMachine guards transitions when strict step ordering is enabled.
Transition table:
    AwaitingDeposit    -> PreparingShipment   (confirm_deposit)
    PreparingShipment  -> InTransit           (confirm_shipping)
    InTransit          -> AwaitingSettlement  (confirm_delivery, external)
    AwaitingSettlement -> SettlementReady     (mark_ready_for_settlement, external)
    SettlementReady    -> Settled             (process_settlement)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from safe_escrow.domain.enums import EscrowStep, SettlementStatus
from safe_escrow.domain.exceptions import InvalidStateTransitionError
from safe_escrow.domain.models import DerivedView

if TYPE_CHECKING:
    from safe_escrow.domain.models import EscrowRecord

STEP_PROGRESS: dict[EscrowStep, float] = {
    EscrowStep.AWAITING_DEPOSIT: 0.0,
    EscrowStep.PREPARING_SHIPMENT: 0.2,
    EscrowStep.IN_TRANSIT: 0.4,
    EscrowStep.AWAITING_SETTLEMENT: 0.6,
    EscrowStep.SETTLEMENT_READY: 0.8,
    EscrowStep.SETTLED: 1.0,
}


def derive_step(
    deposit_confirmed: bool,
    shipping_confirmed: bool,
    delivery_confirmed: bool,
    settlement_status: SettlementStatus | str,
) -> EscrowStep:
    """Return the display step for the given raw fields."""
    step = EscrowStep.AWAITING_DEPOSIT
    if deposit_confirmed:
        step = EscrowStep.PREPARING_SHIPMENT
    if shipping_confirmed:
        step = EscrowStep.IN_TRANSIT
    if delivery_confirmed:
        step = EscrowStep.AWAITING_SETTLEMENT
    if settlement_status == SettlementStatus.READY_FOR_SETTLEMENT:
        step = EscrowStep.SETTLEMENT_READY
    if settlement_status == SettlementStatus.SETTLED:
        step = EscrowStep.SETTLED
    return step


def derive_view(record: EscrowRecord) -> DerivedView:
    """Compute the non-persisted step/progress pair for a record."""
    step = derive_step(
        record.deposit_confirmed,
        record.shipping_confirmed,
        record.delivery_confirmed,
        record.settlement_status,
    )
    return DerivedView(current_step=step, progress=STEP_PROGRESS[step])


class EscrowStateMachine(StateMachine):
    """Guard for the natural deposit -> shipping -> settlement ordering.

    Usage:
        sm = EscrowStateMachine(current_step="PreparingShipment")
        sm.confirm_shipping()   # transitions to InTransit
        sm.step                 # "InTransit"
    """

    # --- States ---
    AWAITING_DEPOSIT = State("Awaiting deposit", value="AwaitingDeposit", initial=True)
    PREPARING_SHIPMENT = State("Preparing shipment", value="PreparingShipment")
    IN_TRANSIT = State("In transit", value="InTransit")
    AWAITING_SETTLEMENT = State("Awaiting settlement", value="AwaitingSettlement")
    SETTLEMENT_READY = State("Settlement ready", value="SettlementReady")
    SETTLED = State("Settled", value="Settled", final=True)

    # --- Admin actions ---
    confirm_deposit = AWAITING_DEPOSIT.to(PREPARING_SHIPMENT)
    confirm_shipping = PREPARING_SHIPMENT.to(IN_TRANSIT)
    process_settlement = SETTLEMENT_READY.to(SETTLED)

    # --- Driven outside this service ---
    confirm_delivery = IN_TRANSIT.to(AWAITING_SETTLEMENT)
    mark_ready_for_settlement = AWAITING_SETTLEMENT.to(SETTLEMENT_READY)

    def __init__(self, current_step: str = EscrowStep.AWAITING_DEPOSIT.value) -> None:
        """Initialize the machine at a derived step.

        Args:
            current_step: An EscrowStep value, e.g. "InTransit".
        """
        valid_values = {s.value for s in self.states}
        if current_step not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(f"Unknown step '{current_step}'. Valid steps: {valid}")
        super().__init__(start_value=str(current_step))

    @property
    def step(self) -> str:
        """Return the current state value (matches EscrowStep)."""
        return str(self.current_state.value)


def guard_transition(record: EscrowRecord, event_name: str) -> EscrowStep:
    """Fire ``event_name`` against the record's derived step.

    Returns:
        The step the record would move to.

    Raises:
        InvalidStateTransitionError: If the event is unknown or not allowed
            from the record's current step.
    """
    current = derive_view(record).current_step
    sm = EscrowStateMachine(current_step=current.value)
    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise InvalidStateTransitionError(current.value, event_name)
    try:
        event_method()
    except TransitionNotAllowed as err:
        raise InvalidStateTransitionError(current.value, event_name) from err
    return EscrowStep(sm.step)
