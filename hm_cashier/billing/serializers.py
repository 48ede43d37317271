# hm_cashier/billing/serializers.py
"""
Wire shapes of bill replacement requests sent to the cashier service.
Used to check a built request before it leaves the billing core.
"""
from __future__ import annotations

from rest_framework import serializers

from hm_cashier.billing.constants import PaymentStatus


def _amount(**kwargs):
    return serializers.DecimalField(max_digits=None, decimal_places=None, **kwargs)


class DiscountRequestSerializer(serializers.Serializer):
    amount = _amount()
    baseAmount = _amount()
    rate = _amount(required=False)
    description = serializers.CharField(required=False)
    sponsor = serializers.CharField(required=False)

    def to_internal_value(self, data):
        if isinstance(data, dict) and "uuid" in data:
            raise serializers.ValidationError({"uuid": "Discounts are replaced, never patched."})
        return super().to_internal_value(data)


class LineItemRequestSerializer(serializers.Serializer):
    uuid = serializers.CharField(required=False, allow_null=True)
    item = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    billableService = serializers.CharField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=0)
    price = _amount()
    priceName = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    priceUuid = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    lineItemOrder = serializers.IntegerField(required=False, allow_null=True)
    paymentStatus = serializers.ChoiceField(choices=PaymentStatus.choices)
    discounts = DiscountRequestSerializer(many=True, required=False)


class PaymentAttributeRequestSerializer(serializers.Serializer):
    attributeType = serializers.CharField(allow_null=True)
    value = serializers.CharField(allow_null=True, allow_blank=True)


class PaymentRequestSerializer(serializers.Serializer):
    uuid = serializers.CharField(required=False)
    dateCreated = serializers.JSONField(required=False)
    voided = serializers.BooleanField()
    resourceVersion = serializers.CharField(required=False, allow_null=True)
    amount = _amount()
    amountTendered = _amount()
    attributes = PaymentAttributeRequestSerializer(many=True)
    instanceType = serializers.CharField()
    voidReason = serializers.CharField(required=False)
    voidedBy = serializers.DictField(required=False)
    dateChanged = serializers.CharField(required=False)


class BillRequestSerializer(serializers.Serializer):
    cashPoint = serializers.CharField()
    cashier = serializers.CharField()
    patient = serializers.CharField()
    lineItems = LineItemRequestSerializer(many=True)
    payments = PaymentRequestSerializer(many=True)
    status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)


class EditLineItemRequestSerializer(BillRequestSerializer):
    lineItems = LineItemRequestSerializer(many=True, allow_empty=False)
    billAdjusted = serializers.CharField()
    adjustmentReason = serializers.CharField()


class DeletePaymentRequestSerializer(BillRequestSerializer):
    payments = PaymentRequestSerializer(many=True, allow_empty=False)

    def validate_payments(self, value):
        if not any(p.get("voided") and p.get("voidReason") for p in value):
            raise serializers.ValidationError("One payment must be voided with a reason.")
        return value


class RecordPaymentRequestSerializer(BillRequestSerializer):
    payments = PaymentRequestSerializer(many=True, allow_empty=False)
