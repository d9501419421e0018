from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings

from .exceptions import InvalidAmount

CENT = Decimal('0.01')


def round2(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FeeBreakdown:
    amount: Decimal
    client_fee: Decimal
    freelancer_fee: Decimal
    net_amount: Decimal
    total_to_escrow: Decimal

    def as_dict(self):
        return {
            'project_amount': str(self.amount),
            'platform_fee': str(self.client_fee),
            'freelancer_fee': str(self.freelancer_fee),
            'net_amount': str(self.net_amount),
            'total': str(self.total_to_escrow),
        }


def calculate_fees(project_amount, client_rate=None, freelancer_rate=None):
    """
    Split a project amount into platform fees, freelancer payout and the
    total the client pays into escrow.

    Each fee is rounded half-up to cents on its own; net and total are then
    derived from the rounded fees, so `net_amount == amount - freelancer_fee`
    and `total_to_escrow == amount + client_fee` hold exactly.
    """
    try:
        amount = Decimal(str(project_amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"Invalid project amount: {project_amount!r}")

    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(f"Project amount must be positive, got {project_amount}")
    if amount != round2(amount):
        raise InvalidAmount(f"Project amount must have at most two decimal places, got {project_amount}")

    if client_rate is None:
        client_rate = settings.CLIENT_COMMISSION_RATE
    if freelancer_rate is None:
        freelancer_rate = settings.FREELANCER_COMMISSION_RATE

    amount = round2(amount)
    client_fee = round2(amount * Decimal(str(client_rate)))
    freelancer_fee = round2(amount * Decimal(str(freelancer_rate)))

    return FeeBreakdown(
        amount=amount,
        client_fee=client_fee,
        freelancer_fee=freelancer_fee,
        net_amount=round2(amount - freelancer_fee),
        total_to_escrow=round2(amount + client_fee),
    )
