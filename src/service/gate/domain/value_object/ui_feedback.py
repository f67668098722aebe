import attrs

from src.service.gate.domain.validation_decision import Verdict


@attrs.define(frozen=True)
class UiFeedback:
    """What the scanner shows and plays for a verdict"""

    color: str
    message: str
    sound: str

    @classmethod
    def for_verdict(cls, verdict: Verdict) -> 'UiFeedback':
        return _FEEDBACK[verdict]


_FEEDBACK = {
    Verdict.VALID: UiFeedback('green', '✅ VALID - Allow Entry', 'success_beep'),
    Verdict.VALID_WITH_WARNING: UiFeedback(
        'amber', '⚠️ CHECK ID - Verify Identity Before Entry', 'warning_beep'
    ),
    Verdict.INVALID: UiFeedback('red', '🚫 INVALID - Entry Denied', 'error_beep'),
    Verdict.REVOKED: UiFeedback('red', '🚫 REVOKED - Entry Denied', 'error_beep'),
    Verdict.ERROR: UiFeedback('red', '⚠️ ERROR - Scan Again', 'error_beep'),
}
