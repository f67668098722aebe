import attrs


@attrs.define(frozen=True)
class CheckoutSession:
    """External checkout handle returned by the payment processor"""

    order_id: str
    approval_url: str

    @property
    def mobile_deep_links(self) -> dict[str, str]:
        return {
            'ios': f'paypal://checkout?token={self.order_id}',
            'android': (
                f'intent://checkout?token={self.order_id}'
                '#Intent;scheme=paypal;package=com.paypal.android;end;'
            ),
            'fallback': self.approval_url,
        }
