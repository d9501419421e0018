from decimal import Decimal

import pytest

from accounts.tests.factories import AdminFactory, ClientFactory, FreelancerFactory
from escrow.services import EscrowService
from payments.tests.fakes import FakeProvider, fake_payment_service
from user_projects.tests.factories import ProposalFactory, UserProjectFactory


@pytest.fixture
def client_user(db):
    return ClientFactory(email="client@example.com")


@pytest.fixture
def freelancer(db):
    return FreelancerFactory(email="freelancer@example.com")


@pytest.fixture
def admin_user(db):
    return AdminFactory(email="admin@example.com")


@pytest.fixture
def make_proposal(client_user, freelancer):
    def _make(bid_amount="500.00", **kwargs):
        project = UserProjectFactory(client=client_user, amount=Decimal(bid_amount))
        return ProposalFactory(project=project, freelancer=freelancer, bid_amount=Decimal(bid_amount), **kwargs)
    return _make


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def service(fake_provider):
    return EscrowService(payment_service=fake_payment_service(fake_provider))


@pytest.fixture
def initiate(service, client_user, make_proposal):
    """Initiate a payment for a fresh accepted proposal and return the PaymentInitiation."""
    def _initiate(bid_amount="500.00", payment_method="flouci"):
        proposal = make_proposal(bid_amount)
        return service.initiate_payment(
            user=client_user,
            project_id=proposal.project_id,
            proposal_id=proposal.pk,
            payment_method=payment_method,
        )
    return _initiate


@pytest.fixture
def escrowed(service, client_user, initiate):
    """A transaction whose funds are held in escrow."""
    def _escrowed(bid_amount="500.00"):
        result = initiate(bid_amount)
        return service.verify_payment(user=client_user, transaction_id=result.transaction.pk)
    return _escrowed
