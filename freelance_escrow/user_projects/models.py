from django.db import models
from django.contrib.auth import get_user_model
from django.utils import timezone

User = get_user_model()


class UserProject(models.Model):
    PENDING = 'pending'
    ACTIVE = 'active'
    COMPLETED = 'completed'
    DISPUTED = 'disputed'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = (
            (PENDING, 'Pending'),
            (ACTIVE, 'Active'),
            (COMPLETED, 'Completed'),
            (DISPUTED, 'Disputed'),
            (CANCELLED, 'Cancelled'),
        )

    # The only statuses the payment flow is allowed to set.
    SETTLEMENT_STATUSES = (COMPLETED, CANCELLED)

    client = models.ForeignKey(User, related_name='client_projects', on_delete=models.PROTECT)
    freelancer = models.ForeignKey(User, related_name='freelancer_projects', on_delete=models.PROTECT, null=True, blank=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    is_public = models.BooleanField(default=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.title} ({self.client} -> {self.freelancer})"

    def set_status(self, status):
        """Close the project once its escrow settles (completed or cancelled)."""
        if status not in self.SETTLEMENT_STATUSES:
            raise ValueError(f"Project status can only be settled to {self.SETTLEMENT_STATUSES}, got '{status}'")

        self.status = status
        update_fields = ['status', 'updated_at']
        if status == self.COMPLETED:
            self.completed_at = timezone.now()
            update_fields.append('completed_at')
        self.save(update_fields=update_fields)


class Proposal(models.Model):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    WITHDRAWN = 'withdrawn'

    STATUS_CHOICES = (
        (PENDING, 'Pending'),
        (ACCEPTED, 'Accepted'),
        (REJECTED, 'Rejected'),
        (WITHDRAWN, 'Withdrawn'),
    )

    project = models.ForeignKey(UserProject, on_delete=models.PROTECT, related_name="proposals")
    freelancer = models.ForeignKey(User, on_delete=models.PROTECT, related_name="proposals")
    cover_letter = models.TextField(blank=True)
    bid_amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    submitted_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    estimated_delivery_days = models.PositiveIntegerField(default=7)
    accepted_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"Proposal by {self.freelancer} on {self.project.title} ({self.bid_amount})"

    @property
    def is_accepted(self):
        return self.status == self.ACCEPTED
