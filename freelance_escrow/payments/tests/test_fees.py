from decimal import Decimal

import pytest

from payments.exceptions import InvalidAmount
from payments.fees import calculate_fees


@pytest.mark.parametrize(
    "amount, client_fee, freelancer_fee, net, total",
    [
        ("100", "5.00", "2.00", "98.00", "105.00"),
        ("150.50", "7.53", "3.01", "147.49", "158.03"),
        ("500", "25.00", "10.00", "490.00", "525.00"),
        ("0.01", "0.00", "0.00", "0.01", "0.01"),
        ("0.10", "0.01", "0.00", "0.10", "0.11"),
    ],
)
def test_fee_table(amount, client_fee, freelancer_fee, net, total):
    fees = calculate_fees(Decimal(amount))

    assert fees.client_fee == Decimal(client_fee)
    assert fees.freelancer_fee == Decimal(freelancer_fee)
    assert fees.net_amount == Decimal(net)
    assert fees.total_to_escrow == Decimal(total)


@pytest.mark.parametrize("amount", ["0.01", "1", "33.33", "150.50", "999.99", "12345.67"])
def test_net_and_total_follow_rounded_fees(amount):
    fees = calculate_fees(amount)

    assert fees.net_amount == fees.amount - fees.freelancer_fee
    assert fees.total_to_escrow == fees.amount + fees.client_fee
    assert fees.client_fee.as_tuple().exponent == -2


@pytest.mark.parametrize("amount", [0, "-10", "abc", None, "NaN"])
def test_rejects_non_positive_or_invalid_amounts(amount):
    with pytest.raises(InvalidAmount):
        calculate_fees(amount)


def test_rates_come_from_settings(settings):
    settings.CLIENT_COMMISSION_RATE = Decimal("0.10")
    settings.FREELANCER_COMMISSION_RATE = Decimal("0.05")

    fees = calculate_fees("200")

    assert fees.client_fee == Decimal("20.00")
    assert fees.freelancer_fee == Decimal("10.00")


def test_explicit_rates_override_settings():
    fees = calculate_fees("200", client_rate="0", freelancer_rate="0")

    assert fees.total_to_escrow == Decimal("200.00")
    assert fees.net_amount == Decimal("200.00")


def test_breakdown_as_dict():
    assert calculate_fees("100").as_dict() == {
        "project_amount": "100.00",
        "platform_fee": "5.00",
        "freelancer_fee": "2.00",
        "net_amount": "98.00",
        "total": "105.00",
    }


@pytest.mark.parametrize("amount", ["0.001", "0.004", "10.005", "99.999"])
def test_rejects_sub_cent_amounts(amount):
    with pytest.raises(InvalidAmount):
        calculate_fees(amount)


def test_trailing_zeros_are_not_sub_cent():
    assert calculate_fees("10.5000").amount == Decimal("10.50")
