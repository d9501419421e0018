from django.contrib import admin

from .models import EscrowLedger


@admin.register(EscrowLedger)
class EscrowLedgerAdmin(admin.ModelAdmin):
    list_display = ('id', 'transaction', 'project', 'amount_held', 'status', 'hold_started_at', 'dispute_opened_at')
    list_filter = ('status',)
    search_fields = ('transaction__id', 'project__title')
    readonly_fields = [field.name for field in EscrowLedger._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
