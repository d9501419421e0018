import pytest

from payments.tests.factories import EscrowLedgerFactory


@pytest.fixture
def pending_ledger(db):
    """A Flouci transaction waiting for the client to pay."""
    return EscrowLedgerFactory()
