from django.contrib import admin

from .models import PaymentSettlement, Transaction, TransactionItem


class TransactionItemInline(admin.TabularInline):
    model = TransactionItem
    extra = 0
    readonly_fields = ('created_at',)


class PaymentSettlementInline(admin.TabularInline):
    model = PaymentSettlement
    extra = 0
    can_delete = False
    readonly_fields = ('amount', 'payment_mode', 'cashier', 'paid_at', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = (
        'or_number', 'customer', 'amount', 'paid_amount', 'balance_amount',
        'payment_status', 'payment_mode', 'transaction_date',
    )
    list_filter = ('payment_status', 'payment_mode', 'transaction_date')
    search_fields = ('or_number', 'customer__name')
    # Derived columns are owned by reconciliation
    readonly_fields = ('amount', 'paid_amount', 'balance_amount', 'payment_status', 'created_at', 'updated_at')
    inlines = [TransactionItemInline, PaymentSettlementInline]


@admin.register(PaymentSettlement)
class PaymentSettlementAdmin(admin.ModelAdmin):
    list_display = ('transaction', 'amount', 'payment_mode', 'cashier', 'paid_at')
    list_filter = ('payment_mode', 'paid_at')
    search_fields = ('transaction__or_number',)
    readonly_fields = [f.name for f in PaymentSettlement._meta.fields]
