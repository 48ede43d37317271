# hm_cashier/billing/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from hm_cashier.billing.constants import DiscountMethod, PaymentStatus


def _money(**kwargs):
    # sums and products of in-range inputs may be wider than any fixed digit count
    return serializers.DecimalField(max_digits=None, decimal_places=2, **kwargs)


# -------------------------------------------------------------------
# Input
# -------------------------------------------------------------------

class BillSummaryRequestSerializer(serializers.Serializer):
    bill = serializers.DictField(help_text="Raw bill as returned by the cashier service.")


class BillMetricsRequestSerializer(serializers.Serializer):
    bills = serializers.ListField(child=serializers.DictField(), allow_empty=True)


class BillListRequestSerializer(serializers.Serializer):
    bills = serializers.ListField(child=serializers.DictField(), allow_empty=True)
    status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
    patient_uuid = serializers.CharField(required=False, allow_blank=True)


class PaymentModesRequestSerializer(serializers.Serializer):
    modes = serializers.ListField(child=serializers.DictField(), allow_empty=True)
    exclude_waiver = serializers.BooleanField(default=True)


class ReceiptNumberRequestSerializer(serializers.Serializer):
    existing = serializers.ListField(
        child=serializers.CharField(allow_blank=True, allow_null=True),
        allow_empty=True,
        help_text="Receipt numbers already issued.",
    )
    today = serializers.DateField(required=False)


class EditLineItemFormSerializer(serializers.Serializer):
    """
    Numbers are taken as entered; text that cannot be read keeps the line
    item's current value.
    """
    price = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    quantity = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    discount_method = serializers.ChoiceField(choices=DiscountMethod.choices, required=False)
    discount_value = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    discount_description = serializers.CharField(required=False, allow_blank=True, default="")
    sponsor = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class EditLineItemInputSerializer(serializers.Serializer):
    bill = serializers.DictField()
    line_item = serializers.CharField()
    reason = serializers.CharField()
    form_data = EditLineItemFormSerializer()


class DeletePaymentInputSerializer(serializers.Serializer):
    bill = serializers.DictField()
    payment = serializers.CharField()
    reason = serializers.CharField()
    actor_uuid = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class PaymentRowSerializer(serializers.Serializer):
    method = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    amount = serializers.DecimalField(max_digits=None, decimal_places=None, required=False, allow_null=True)
    reference_code = serializers.CharField(required=False, allow_blank=True, default="")
    reference_attribute_type = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PaymentInputSerializer(serializers.Serializer):
    bill = serializers.DictField()
    rows = PaymentRowSerializer(many=True, allow_empty=True)
    selected_line_items = serializers.ListField(child=serializers.CharField(), allow_empty=True)


# -------------------------------------------------------------------
# Output
# -------------------------------------------------------------------

class ReferenceSerializer(serializers.Serializer):
    uuid = serializers.CharField(allow_null=True)
    display = serializers.CharField(allow_null=True)


class DiscountSerializer(serializers.Serializer):
    uuid = serializers.CharField(allow_null=True)
    amount = _money()
    base_amount = _money(allow_null=True)
    rate = serializers.DecimalField(max_digits=None, decimal_places=None, allow_null=True)
    description = serializers.CharField(allow_null=True)
    sponsor = serializers.CharField(allow_null=True)


class LineItemSerializer(serializers.Serializer):
    uuid = serializers.CharField(allow_null=True)
    item = serializers.CharField(allow_null=True)
    billable_service = serializers.CharField(allow_null=True)
    service_name = serializers.CharField()
    price = _money()
    quantity = serializers.IntegerField()
    price_name = serializers.CharField(allow_null=True)
    price_uuid = serializers.CharField(allow_null=True)
    line_item_order = serializers.IntegerField(allow_null=True)
    payment_status = serializers.CharField()
    subtotal = _money()
    tax_amount = _money()
    discount_amount = _money()
    amount_due = _money()
    discounts = DiscountSerializer(many=True)


class PaymentModeSerializer(serializers.Serializer):
    uuid = serializers.CharField(allow_null=True)
    name = serializers.CharField(allow_null=True)


class PaymentAttributeSerializer(serializers.Serializer):
    attribute_type = serializers.CharField(allow_null=True)
    attribute_type_description = serializers.CharField(allow_null=True)
    value = serializers.ReadOnlyField()


class PaymentSerializer(serializers.Serializer):
    uuid = serializers.CharField(allow_null=True)
    instance_type = PaymentModeSerializer()
    amount = _money()
    amount_tendered = _money()
    attributes = PaymentAttributeSerializer(many=True)
    voided = serializers.BooleanField()
    void_reason = serializers.CharField(allow_null=True)
    date_created = serializers.ReadOnlyField()
    resource_version = serializers.CharField(allow_null=True)


class ComputedBillSerializer(serializers.Serializer):
    uuid = serializers.CharField(allow_null=True)
    id = serializers.IntegerField(allow_null=True)
    display = serializers.CharField(allow_null=True)
    patient_uuid = serializers.CharField(allow_null=True)
    patient_name = serializers.CharField(allow_null=True)
    identifier = serializers.CharField(allow_null=True)
    cashier = ReferenceSerializer(allow_null=True)
    cash_point_uuid = serializers.CharField(allow_null=True)
    cash_point_name = serializers.CharField(allow_null=True)
    cash_point_location = serializers.CharField(allow_null=True)
    receipt_number = serializers.CharField(allow_null=True)
    adjustment_reason = serializers.CharField(allow_null=True)
    status = serializers.CharField()
    server_status = serializers.CharField(allow_null=True)
    date_created = serializers.CharField()
    date_created_unformatted = serializers.CharField(allow_null=True)
    billing_service = serializers.CharField()
    total_amount = _money()
    total_amount_without_tax_and_discount = _money()
    tendered_amount = _money()
    amount_due = _money()
    reference_codes = serializers.CharField()
    balance = _money(allow_null=True)
    total_payments = _money()
    total_deposits = _money()
    total_exempted = _money()
    total_waived = _money()
    total_actual_payments = _money()
    total_tax = _money()
    bill_line_item_discounts = _money()
    total_discounts = _money()
    closed = serializers.BooleanField()
    line_items = LineItemSerializer(many=True)
    payments = PaymentSerializer(many=True)


class BillMetricsSerializer(serializers.Serializer):
    collection = _money()
    pending = _money()
    exempted = _money()
    waived = _money()
    tax_collected = _money()
    cumulative = _money()
    bill_count = serializers.IntegerField()
    display = serializers.SerializerMethodField()

    def get_display(self, obj) -> dict:
        return obj.as_display(self.context.get("currency", ""))


class PaymentValidationResultSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    field_errors = serializers.SerializerMethodField()
    notices = serializers.SerializerMethodField()
    selected_amount_due = _money()
    total_tendered = _money()

    def get_field_errors(self, obj) -> dict:
        return {str(idx): errors for idx, errors in obj.field_errors.items()}

    def get_notices(self, obj) -> list:
        return [{k: str(v) for k, v in notice.items()} for notice in obj.notices]


class BillRequestOutputSerializer(serializers.Serializer):
    kind = serializers.CharField()
    payload = serializers.DictField()


class ReceiptNumberSerializer(serializers.Serializer):
    receipt_number = serializers.CharField()
