from decimal import Decimal

import factory
from django.utils import timezone

from accounts.tests.factories import ClientFactory, FreelancerFactory
from user_projects.models import Proposal, UserProject


class UserProjectFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = UserProject

    client = factory.SubFactory(ClientFactory)
    title = factory.Sequence(lambda n: f"Project {n}")
    description = "Build a landing page"
    amount = Decimal("500.00")
    status = UserProject.ACTIVE


class ProposalFactory(factory.django.DjangoModelFactory):
    """Accepted proposal by default; the payment flow only deals with those."""

    class Meta:
        model = Proposal

    project = factory.SubFactory(UserProjectFactory)
    freelancer = factory.SubFactory(FreelancerFactory)
    cover_letter = "I can do this."
    bid_amount = Decimal("500.00")
    status = Proposal.ACCEPTED
    accepted_at = factory.LazyFunction(timezone.now)
