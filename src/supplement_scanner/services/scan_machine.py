"""Pure transition function for the scan workflow."""

from supplement_scanner.domain.errors import InvalidTransitionError
from supplement_scanner.domain.scan import TERMINAL_STATES, ScanEvent, ScanState

_TRANSITIONS: dict[ScanState, dict[ScanEvent, ScanState]] = {
    ScanState.CAPTURE_FRONT: {
        ScanEvent.FRONT_CAPTURED: ScanState.CAPTURE_BACK,
        ScanEvent.FRONT_RETAKEN: ScanState.PREVIEW,
        ScanEvent.CAPTURE_FAILED: ScanState.CAPTURE_FRONT,
    },
    ScanState.CAPTURE_BACK: {
        ScanEvent.BACK_CAPTURED: ScanState.PREVIEW,
        ScanEvent.BACK_SKIPPED: ScanState.PREVIEW,
        ScanEvent.RETAKE_FRONT: ScanState.CAPTURE_FRONT,
        ScanEvent.CAPTURE_FAILED: ScanState.PREVIEW,
    },
    ScanState.PREVIEW: {
        ScanEvent.RETAKE_FRONT: ScanState.CAPTURE_FRONT,
        ScanEvent.RETAKE_BACK: ScanState.CAPTURE_BACK,
        ScanEvent.ANALYZE: ScanState.ANALYZING,
    },
    ScanState.ANALYZING: {
        ScanEvent.ANALYSIS_FAILED: ScanState.PREVIEW,
        ScanEvent.QUICK_MATCHED: ScanState.QUICK_MATCH_RESOLVED,
        ScanEvent.PRODUCT_RECOGNIZED: ScanState.ENRICHING,
    },
    ScanState.QUICK_MATCH_RESOLVED: {
        ScanEvent.LEDGER_RECORDED: ScanState.PRESENTING,
        ScanEvent.ANALYSIS_FAILED: ScanState.PREVIEW,
    },
    ScanState.ENRICHING: {
        ScanEvent.ENRICHMENT_SETTLED: ScanState.PRESENTING,
        ScanEvent.ANALYSIS_FAILED: ScanState.PREVIEW,
    },
    ScanState.PRESENTING: {
        ScanEvent.COMMITTED: ScanState.COMMITTED,
    },
}


def transition(state: ScanState, event: ScanEvent) -> ScanState:
    """Return the state reached from ``state`` on ``event``.

    Cancel is accepted from every non-terminal state. Anything else not listed
    in the transition table raises ``InvalidTransitionError``.
    """
    if state in TERMINAL_STATES:
        raise InvalidTransitionError(f"Scan already finished ({state.value}).")
    if event is ScanEvent.CANCEL:
        return ScanState.CANCELLED
    target = _TRANSITIONS.get(state, {}).get(event)
    if target is None:
        raise InvalidTransitionError(
            f"Cannot handle {event.value} while in {state.value}."
        )
    return target


def allowed_events(state: ScanState) -> set[ScanEvent]:
    """Return the events accepted in a state."""
    if state in TERMINAL_STATES:
        return set()
    return set(_TRANSITIONS.get(state, {})) | {ScanEvent.CANCEL}
