import django_filters as filters

from .models import Transaction


class TransactionFilter(filters.FilterSet):
    status = filters.ChoiceFilter(choices=Transaction.STATUS_CHOICES)
    payment_method = filters.ChoiceFilter(choices=Transaction.PAYMENT_METHOD_CHOICES)
    created_after = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Transaction
        fields = ["status", "payment_method", "created_after", "created_before"]
