import uuid

from django.db import models
from django.utils import timezone
from auditlog.registry import auditlog
from auditlog.models import AuditlogHistoryField

from user_projects.models import UserProject
from payments.exceptions import IntegrityViolation, InvalidStateTransition


class EscrowLedger(models.Model):
    """
    Money held on behalf of a transaction. `amount_held` is fixed at creation
    (project amount plus client fee) and released/refunded rows are frozen.
    """
    PENDING_PAYMENT = 'pending_payment'
    HELD = 'held'
    RELEASED = 'released'
    REFUNDED = 'refunded'
    DISPUTED = 'disputed'

    STATUS_CHOICES = (
        (PENDING_PAYMENT, 'Pending Payment'),
        (HELD, 'Held'),
        (RELEASED, 'Released'),
        (REFUNDED, 'Refunded'),
        (DISPUTED, 'Disputed'),
    )

    TERMINAL_STATUSES = (RELEASED, REFUNDED)

    RELEASE = 'release'
    REFUND = 'refund'
    RESOLUTIONS = (RELEASE, REFUND)

    TRANSITIONS = {
        (PENDING_PAYMENT, 'confirm_funds'): HELD,
        (HELD, 'release'): RELEASED,
        (HELD, 'open_dispute'): DISPUTED,
        (DISPUTED, 'resolve_release'): RELEASED,
        (DISPUTED, 'resolve_refund'): REFUNDED,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    transaction = models.OneToOneField('payments.Transaction', on_delete=models.PROTECT, related_name='escrow')
    project = models.ForeignKey(UserProject, on_delete=models.PROTECT, related_name='escrow_ledgers')
    amount_held = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING_PAYMENT)

    hold_started_at = models.DateTimeField(null=True, blank=True)
    hold_released_at = models.DateTimeField(null=True, blank=True)

    dispute_reason = models.TextField(blank=True)
    dispute_opened_at = models.DateTimeField(null=True, blank=True)
    dispute_resolved_at = models.DateTimeField(null=True, blank=True)
    resolution_notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = AuditlogHistoryField(pk_indexable=False)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Escrow {self.amount_held} for {self.project_id} ({self.status})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_amount_held = instance.__dict__.get('amount_held')
        instance._loaded_status = instance.__dict__.get('status')
        return instance

    def save(self, *args, **kwargs):
        if not self._state.adding:
            loaded_status = getattr(self, '_loaded_status', None)
            loaded_amount = getattr(self, '_loaded_amount_held', None)
            if loaded_status in self.TERMINAL_STATUSES:
                raise IntegrityViolation(f"Escrow {self.pk} is {loaded_status} and can no longer change")
            if loaded_amount is not None and self.amount_held != loaded_amount:
                raise IntegrityViolation(f"Escrow {self.pk} amount_held cannot change after creation")
        super().save(*args, **kwargs)
        self._loaded_amount_held = self.amount_held
        self._loaded_status = self.status

    def can_release(self):
        return self.status == self.HELD

    def can_refund(self):
        return self.status in (self.HELD, self.DISPUTED)

    def _transition(self, action):
        try:
            self.status = self.TRANSITIONS[(self.status, action)]
        except KeyError:
            raise InvalidStateTransition(self.status, action)

    def confirm_funds(self):
        self._transition('confirm_funds')
        self.hold_started_at = timezone.now()

    def release(self):
        self._transition('release')
        self.hold_released_at = timezone.now()

    def open_dispute(self, reason):
        self._transition('open_dispute')
        self.dispute_reason = reason
        self.dispute_opened_at = timezone.now()

    def resolve(self, resolution, notes):
        if resolution not in self.RESOLUTIONS:
            raise InvalidStateTransition(self.status, f"resolve_{resolution}")
        self._transition(f"resolve_{resolution}")
        now = timezone.now()
        self.resolution_notes = notes
        self.dispute_resolved_at = now
        self.hold_released_at = now


auditlog.register(EscrowLedger)
