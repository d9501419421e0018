import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone
from auditlog.registry import auditlog
from auditlog.models import AuditlogHistoryField

from user_projects.models import UserProject, Proposal
from .exceptions import InvalidStateTransition


class Transaction(models.Model):
    """
    One payment of a client to a freelancer for an accepted proposal.

    Rows are never deleted; status only moves forward along TRANSITIONS.
    """
    PENDING = 'pending'
    ESCROWED = 'escrowed'
    RELEASED = 'released'
    REFUNDED = 'refunded'
    FAILED = 'failed'

    STATUS_CHOICES = (
        (PENDING, 'Pending'),
        (ESCROWED, 'Escrowed'),
        (RELEASED, 'Released'),
        (REFUNDED, 'Refunded'),
        (FAILED, 'Failed'),
    )

    FLOUCI = 'flouci'
    D17 = 'd17'
    BANK_TRANSFER = 'bank_transfer'
    EDINAR = 'edinar'

    PAYMENT_METHOD_CHOICES = (
        (FLOUCI, 'Flouci'),
        (D17, 'D17'),
        (BANK_TRANSFER, 'Bank transfer'),
        (EDINAR, 'e-Dinar'),
    )

    # Methods settled offline and confirmed by an admin.
    MANUAL_METHODS = (BANK_TRANSFER, EDINAR)

    TRANSITIONS = {
        (PENDING, 'confirm_funds'): ESCROWED,
        (PENDING, 'fail'): FAILED,
        (ESCROWED, 'release'): RELEASED,
        (ESCROWED, 'refund'): REFUNDED,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.ForeignKey(UserProject, on_delete=models.PROTECT, related_name='transactions')
    proposal = models.ForeignKey(Proposal, on_delete=models.PROTECT, related_name='transactions')
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='client_transactions')
    freelancer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='freelancer_transactions')

    amount = models.DecimalField(max_digits=10, decimal_places=2)
    client_fee = models.DecimalField(max_digits=10, decimal_places=2)
    freelancer_fee = models.DecimalField(max_digits=10, decimal_places=2)
    net_amount = models.DecimalField(max_digits=10, decimal_places=2)

    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    payment_gateway_reference = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    payment_gateway_response = models.JSONField(null=True, blank=True)

    escrowed_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = AuditlogHistoryField(pk_indexable=False)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['project', 'proposal'], name='unique_transaction_per_proposal'),
        ]

    def __str__(self):
        return f"{self.payment_method} {self.amount} for {self.project_id} ({self.status})"

    @property
    def is_manual(self):
        return self.payment_method in self.MANUAL_METHODS

    @property
    def total_to_escrow(self):
        return self.amount + self.client_fee

    def _transition(self, action):
        try:
            self.status = self.TRANSITIONS[(self.status, action)]
        except KeyError:
            raise InvalidStateTransition(self.status, action)

    def confirm_funds(self, gateway_response=None):
        self._transition('confirm_funds')
        self.escrowed_at = timezone.now()
        if gateway_response is not None:
            self.payment_gateway_response = gateway_response

    def fail(self, gateway_response=None):
        self._transition('fail')
        if gateway_response is not None:
            self.payment_gateway_response = gateway_response

    def release(self):
        self._transition('release')
        self.released_at = timezone.now()

    def refund(self, reason=''):
        self._transition('refund')
        self.refunded_at = timezone.now()
        if reason:
            self.refund_reason = reason


class WebhookEvent(models.Model):
    """
    Record of a processed gateway callback, one per (provider, event_id).
    """
    provider = models.CharField(max_length=50)
    event_id = models.CharField(max_length=255)
    status = models.CharField(max_length=50, blank=True)
    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='webhook_events',
    )
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['provider', 'event_id'], name='unique_webhook_event'),
        ]

    def __str__(self):
        return f"{self.provider}:{self.event_id}"


auditlog.register(Transaction, exclude_fields=['payment_gateway_response'])
