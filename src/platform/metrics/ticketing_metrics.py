from prometheus_client import Counter, Histogram


class TicketingMetrics:
    """
    Purchase pipeline and gate metrics, exposed on /metrics

    Reservation and issuance outcomes, webhook handling, registry mirroring
    and scan verdicts.
    """

    def __init__(self) -> None:
        # ========== Purchase Pipeline ==========
        self.reservations = Counter(
            'inventory_reservations_total',
            'Inventory reservation attempts',
            ['result'],  # reserved / insufficient_capacity / event_not_found / event_in_past
        )

        self.reservation_releases = Counter(
            'inventory_reservation_releases_total',
            'Reservations released back to the event counter',
            ['reason'],  # processor_failure / payment_failed / expired
        )

        self.webhook_notifications = Counter(
            'payment_webhook_notifications_total',
            'Payment notifications by outcome',
            ['outcome'],  # processed / replayed / ignored / failed / rejected
        )

        self.tickets_issued = Counter('tickets_issued_total', 'Tickets issued')

        # ========== Registry Mirroring ==========
        self.registrations = Counter(
            'registry_registrations_total',
            'Registry registration outcomes',
            ['result', 'category'],
        )

        self.registration_duration = Histogram(
            'registry_registration_duration_seconds',
            'Registration cycle duration including confirmation',
            buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
        )

        # ========== Gate ==========
        self.validations = Counter(
            'gate_validations_total',
            'Scan verdicts',
            ['verdict'],
        )

        self.validation_duration = Histogram(
            'gate_validation_duration_seconds',
            'Scan decision latency',
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
        )

    # ========== Helper Methods ==========

    def record_reservation(self, *, result: str) -> None:
        self.reservations.labels(result=result).inc()

    def record_release(self, *, reason: str) -> None:
        self.reservation_releases.labels(reason=reason).inc()

    def record_webhook(self, *, outcome: str) -> None:
        self.webhook_notifications.labels(outcome=outcome).inc()

    def record_issuance(self, *, quantity: int) -> None:
        self.tickets_issued.inc(quantity)

    def record_registration(self, *, result: str, category: str, duration: float) -> None:
        self.registrations.labels(result=result, category=category).inc()
        self.registration_duration.observe(duration)

    def record_validation(self, *, verdict: str, duration: float) -> None:
        self.validations.labels(verdict=verdict).inc()
        self.validation_duration.observe(duration)


# Global metrics instance
metrics = TicketingMetrics()
