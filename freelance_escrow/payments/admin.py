from django.contrib import admin

from .models import Transaction, WebhookEvent


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('id', 'project', 'client', 'freelancer', 'amount', 'payment_method', 'status', 'created_at')
    list_filter = ('payment_method', 'status')
    search_fields = ('id', 'payment_gateway_reference', 'client__email', 'freelancer__email')
    readonly_fields = [field.name for field in Transaction._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ('provider', 'event_id', 'status', 'transaction', 'received_at')
    list_filter = ('provider',)
    search_fields = ('event_id',)
