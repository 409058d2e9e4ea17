from dataclasses import dataclass, asdict
from typing import Callable, Iterable, List, Optional

from ..constants.payment_methods import (
    DEFAULT_AVAILABLE_PROVIDERS,
    PAYMENT_METHOD_BADGES,
    PAYMENT_METHOD_NAMES,
    PAYMENT_METHOD_TAGLINES,
    PROVIDER_ORDER,
    PaymentProvider,
)
from .rendering import render_template


@dataclass(frozen=True)
class PaymentOption:
    provider: PaymentProvider
    label: str
    tagline: str
    badge: str
    badge_colour: str
    selected: bool

    def to_dict(self):
        data = asdict(self)
        data["provider"] = self.provider.value
        return data


class PaymentMethodSelector:
    """
    Offers the available payment providers, in canonical order, and reports
    the member's choice through `on_method_change`.

    Holds nothing beyond its inputs: the same (selected, available) pair
    always yields the same options.
    """

    def __init__(
        self,
        selected: PaymentProvider,
        on_method_change: Callable[[PaymentProvider], None],
        available: Optional[Iterable[PaymentProvider]] = None,
    ):
        self.selected = PaymentProvider(selected)
        self.on_method_change = on_method_change
        if available is None:
            available = DEFAULT_AVAILABLE_PROVIDERS
        self.available = frozenset(PaymentProvider(p) for p in available)

    @property
    def options(self) -> List[PaymentOption]:
        options = []
        for provider in PROVIDER_ORDER:
            if provider not in self.available:
                continue
            badge, colour = PAYMENT_METHOD_BADGES[provider]
            options.append(
                PaymentOption(
                    provider=provider,
                    label=PAYMENT_METHOD_NAMES[provider],
                    tagline=PAYMENT_METHOD_TAGLINES[provider],
                    badge=badge,
                    badge_colour=colour,
                    selected=provider == self.selected,
                )
            )
        return options

    def select(self, provider):
        """Report a choice. Providers that are not offered cannot be chosen."""
        provider = PaymentProvider(provider)
        if provider not in self.available:
            raise ValueError(f"Payment method {provider.value} is not available")
        self.on_method_change(provider)
        return provider

    def to_dict(self):
        return {
            "selected": self.selected.value,
            "available": [p.value for p in PROVIDER_ORDER if p in self.available],
            "options": [option.to_dict() for option in self.options],
        }

    def render(self, form_action=None, field_name="provider"):
        return render_template(
            "payments/payment_method_selector.html",
            options=self.options,
            form_action=form_action,
            field_name=field_name,
        )
