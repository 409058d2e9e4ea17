from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from ..utils.currency import DEFAULT_CURRENCY, DEFAULT_LOCALE, format_currency
from .rendering import render_template

NEXT_STEPS = (
    "You will receive a prompt on your phone to authorize the payment",
    "Once authorized, the funds will be transferred to your group's account",
    "You will receive a confirmation SMS with your receipt details",
    "Your contribution will be marked as paid in the system",
)

ACTION_MAKE_ANOTHER = "make_another"
ACTION_VIEW_HISTORY = "view_history"


@dataclass(frozen=True)
class ContributionPaymentResult:
    """Outcome of a successful payment initiation, as shown to the member."""
    transaction_id: str
    amount: float
    phone_number: str
    payment_method: str
    group_name: str
    currency: str = DEFAULT_CURRENCY
    cycle_period: Optional[str] = None


@dataclass(frozen=True)
class ConfirmationAction:
    key: str
    label: str
    variant: str
    callback: Callable[[], Any]


class ContributionConfirmation:
    """
    Presents an initiated contribution payment: a summary table, the
    settlement steps and whichever follow-up actions the caller wired in.

    Navigation is the caller's business; `trigger` only hands control to
    the supplied callback.
    """

    def __init__(
        self,
        result: ContributionPaymentResult,
        on_make_another: Optional[Callable[[], Any]] = None,
        on_view_history: Optional[Callable[[], Any]] = None,
        locale: str = DEFAULT_LOCALE,
    ):
        self.result = result
        self.on_make_another = on_make_another
        self.on_view_history = on_view_history
        self.locale = locale

    @property
    def formatted_amount(self) -> str:
        return format_currency(self.result.amount, self.result.currency, locale=self.locale)

    @property
    def summary_rows(self) -> List[Tuple[str, str]]:
        rows = [
            ("Transaction ID", self.result.transaction_id),
            ("Group", self.result.group_name),
        ]
        if self.result.cycle_period is not None:
            rows.append(("Cycle Period", self.result.cycle_period))
        rows.extend([
            ("Amount", self.formatted_amount),
            ("Payment Method", self.result.payment_method),
            ("Phone Number", self.result.phone_number),
        ])
        return rows

    @property
    def next_steps(self) -> Tuple[str, ...]:
        return NEXT_STEPS

    @property
    def actions(self) -> List[ConfirmationAction]:
        actions = []
        if self.on_make_another is not None:
            actions.append(ConfirmationAction(
                ACTION_MAKE_ANOTHER, "Make Another Contribution", "outline", self.on_make_another
            ))
        if self.on_view_history is not None:
            actions.append(ConfirmationAction(
                ACTION_VIEW_HISTORY, "View Contribution History", "primary", self.on_view_history
            ))
        return actions

    def trigger(self, action_key):
        for action in self.actions:
            if action.key == action_key:
                return action.callback()
        raise KeyError(f"Action {action_key} is not available")

    def to_dict(self):
        return {
            "title": "Payment Initiated",
            "transaction_id": self.result.transaction_id,
            "formatted_amount": self.formatted_amount,
            "summary": [{"label": label, "value": value} for label, value in self.summary_rows],
            "next_steps": list(self.next_steps),
            "actions": [{"key": a.key, "label": a.label, "variant": a.variant} for a in self.actions],
        }

    def render(self, action_url_prefix=None):
        return render_template(
            "payments/contribution_confirmation.html",
            summary_rows=self.summary_rows,
            next_steps=self.next_steps,
            actions=self.actions,
            action_url_prefix=action_url_prefix,
        )
