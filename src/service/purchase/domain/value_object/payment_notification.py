"""
Payment processor notification, decoded into a tagged variant.

The processor's payload shape varies by event type and SDK version, so the
purchase handle is looked up through an ordered list of extraction strategies
instead of speculative field access:

1. resource.supplementary_data.related_ids.order_id  (canonical order handle)
2. resource.purchase_units[0].reference_id / custom_id, resource.custom_id
   (our purchase id, sent as reference_id when the order was opened)
3. resource.id  (the transaction handle itself)

A payload where no strategy yields a handle carries no candidates and the
guard fails closed on it.
"""

from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any, Callable, Mapping, Optional

import attrs


class NotificationKind(StrEnum):
    CAPTURE_COMPLETED = 'capture_completed'
    CAPTURE_FAILED = 'capture_failed'
    IGNORED = 'ignored'


class HandleSource(StrEnum):
    ORDER_HANDLE = 'order_handle'
    CORRELATION = 'correlation'
    TRANSACTION = 'transaction'


COMPLETED_EVENT_TYPES = frozenset({'PAYMENT.CAPTURE.COMPLETED'})
FAILED_EVENT_TYPES = frozenset(
    {
        'PAYMENT.CAPTURE.DENIED',
        'PAYMENT.CAPTURE.DECLINED',
        'CHECKOUT.PAYMENT-APPROVAL.REVERSED',
    }
)


@attrs.define(frozen=True)
class HandleCandidate:
    source: HandleSource
    value: str


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _first_purchase_unit(resource: Mapping[str, Any]) -> Mapping[str, Any]:
    units = resource.get('purchase_units')
    if isinstance(units, list) and units:
        return _as_mapping(units[0])
    return {}


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, (str, int)) and str(value).strip():
        return str(value).strip()
    return None


def _related_order_id(resource: Mapping[str, Any]) -> list[Optional[str]]:
    related = _as_mapping(_as_mapping(resource.get('supplementary_data')).get('related_ids'))
    return [_non_empty_str(related.get('order_id'))]


def _correlation_ids(resource: Mapping[str, Any]) -> list[Optional[str]]:
    unit = _first_purchase_unit(resource)
    return [
        _non_empty_str(unit.get('reference_id')),
        _non_empty_str(unit.get('custom_id')),
        _non_empty_str(resource.get('custom_id')),
    ]


def _resource_id(resource: Mapping[str, Any]) -> list[Optional[str]]:
    return [_non_empty_str(resource.get('id'))]


_EXTRACTION_STRATEGIES: tuple[
    tuple[HandleSource, Callable[[Mapping[str, Any]], list[Optional[str]]]], ...
] = (
    (HandleSource.ORDER_HANDLE, _related_order_id),
    (HandleSource.CORRELATION, _correlation_ids),
    (HandleSource.TRANSACTION, _resource_id),
)


def _captured_amount(resource: Mapping[str, Any]) -> Optional[Decimal]:
    for amount in (
        _as_mapping(resource.get('amount')),
        _as_mapping(_first_purchase_unit(resource).get('amount')),
    ):
        value = amount.get('value')
        if value is None:
            continue
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


@attrs.define(frozen=True)
class PaymentNotification:
    kind: NotificationKind
    event_type: str
    candidates: tuple[HandleCandidate, ...] = ()
    transaction_id: Optional[str] = None
    captured_amount: Optional[Decimal] = None

    @classmethod
    def decode(cls, payload: Mapping[str, Any]) -> 'PaymentNotification':
        event_type = str(_as_mapping(payload).get('event_type') or '')
        if event_type in COMPLETED_EVENT_TYPES:
            kind = NotificationKind.CAPTURE_COMPLETED
        elif event_type in FAILED_EVENT_TYPES:
            kind = NotificationKind.CAPTURE_FAILED
        else:
            return cls(kind=NotificationKind.IGNORED, event_type=event_type)

        resource = _as_mapping(_as_mapping(payload).get('resource'))
        candidates: list[HandleCandidate] = []
        for source, strategy in _EXTRACTION_STRATEGIES:
            for value in strategy(resource):
                if value and all(c.value != value for c in candidates):
                    candidates.append(HandleCandidate(source=source, value=value))

        return cls(
            kind=kind,
            event_type=event_type,
            candidates=tuple(candidates),
            transaction_id=_non_empty_str(resource.get('id')),
            captured_amount=_captured_amount(resource),
        )
