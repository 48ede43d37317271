# hm_cashier/billing/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from hm_cashier.billing.api.serializers import (
    BillListRequestSerializer,
    BillMetricsRequestSerializer,
    BillMetricsSerializer,
    BillRequestOutputSerializer,
    BillSummaryRequestSerializer,
    ComputedBillSerializer,
    DeletePaymentInputSerializer,
    EditLineItemInputSerializer,
    PaymentInputSerializer,
    PaymentModeSerializer,
    PaymentModesRequestSerializer,
    PaymentValidationResultSerializer,
    ReceiptNumberRequestSerializer,
    ReceiptNumberSerializer,
)
from hm_cashier.billing.config import BillingConfig
from hm_cashier.billing.mapper import BillMapper
from hm_cashier.billing.metrics import MetricsAggregator
from hm_cashier.billing.payloads import BillRequest, PayloadBuilder
from hm_cashier.billing.receipts import ReceiptNumbers
from hm_cashier.billing.selectors import BillSelectors
from hm_cashier.billing.types import PaymentRow
from hm_cashier.billing.validators import PaymentValidator


def _request_response(req: BillRequest) -> Response:
    return Response({"kind": req.kind, "payload": req.to_payload()}, status=status.HTTP_200_OK)


class BillComputationViewSet(viewsets.ViewSet):
    """
    Stateless billing computations over bills posted by the caller:
    - summary: raw bill -> computed bill
    - list: raw bills -> computed bills, filtered, newest first
    - metrics: raw bills -> dashboard metrics
    - edit-line-item / delete-payment / record-payment: replacement payloads
    - validate-payment: payment rows check without building a payload
    - payment-modes: fetched modes minus the ones not accepted at the till
    - receipt-number: next receipt number after the ones already issued

    Nothing is persisted or sent to the cashier service from here.
    """

    @extend_schema(
        tags=["Billing"],
        request=BillSummaryRequestSerializer,
        responses={200: ComputedBillSerializer},
    )
    @action(detail=False, methods=["post"], url_path="summary")
    def summary(self, request):
        ser = BillSummaryRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        bill = BillMapper.map(ser.validated_data["bill"], config=BillingConfig.from_settings())
        return Response(ComputedBillSerializer(bill).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Billing"],
        request=BillListRequestSerializer,
        responses={200: ComputedBillSerializer(many=True)},
    )
    @action(detail=False, methods=["post"], url_path="list")
    def list_bills(self, request):
        ser = BillListRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        bills = BillMapper.map_many(data["bills"], config=BillingConfig.from_settings())
        bills = BillSelectors.filter_bills(
            bills,
            status=data.get("status") or None,
            patient_uuid=data.get("patient_uuid") or None,
        )
        return Response(ComputedBillSerializer(bills, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Billing"],
        request=BillMetricsRequestSerializer,
        responses={200: BillMetricsSerializer},
    )
    @action(detail=False, methods=["post"], url_path="metrics")
    def metrics(self, request):
        ser = BillMetricsRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        config = BillingConfig.from_settings()
        bills = BillMapper.map_many(ser.validated_data["bills"], config=config)
        result = MetricsAggregator.aggregate(bills, config=config)
        return Response(
            BillMetricsSerializer(result, context={"currency": config.currency}).data,
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        tags=["Billing"],
        request=EditLineItemInputSerializer,
        responses={200: BillRequestOutputSerializer},
    )
    @action(detail=False, methods=["post"], url_path="edit-line-item")
    def edit_line_item(self, request):
        ser = EditLineItemInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        bill = BillMapper.map(data["bill"], config=BillingConfig.from_settings())
        req = PayloadBuilder.build_edit_line_item_payload(
            line_item=data["line_item"],
            form_data=data["form_data"],
            bill=bill,
            reason=data["reason"],
        )
        return _request_response(req)

    @extend_schema(
        tags=["Billing"],
        request=DeletePaymentInputSerializer,
        responses={200: BillRequestOutputSerializer},
    )
    @action(detail=False, methods=["post"], url_path="delete-payment")
    def delete_payment(self, request):
        ser = DeletePaymentInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        bill = BillMapper.map(data["bill"], config=BillingConfig.from_settings())
        req = PayloadBuilder.build_delete_payment_payload(
            bill=bill,
            payment=data["payment"],
            reason=data["reason"],
            actor_uuid=data.get("actor_uuid") or None,
        )
        return _request_response(req)

    @extend_schema(
        tags=["Billing"],
        request=PaymentInputSerializer,
        responses={200: BillRequestOutputSerializer},
    )
    @action(detail=False, methods=["post"], url_path="record-payment")
    def record_payment(self, request):
        ser = PaymentInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        config = BillingConfig.from_settings()
        bill = BillMapper.map(data["bill"], config=config)
        req = PayloadBuilder.build_payment_payload(
            bill=bill,
            rows=[PaymentRow.from_payload(r) for r in data["rows"]],
            selected_line_items=data["selected_line_items"],
            config=config,
        )
        return _request_response(req)

    @extend_schema(
        tags=["Billing"],
        request=PaymentInputSerializer,
        responses={200: PaymentValidationResultSerializer},
    )
    @action(detail=False, methods=["post"], url_path="validate-payment")
    def validate_payment(self, request):
        ser = PaymentInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        config = BillingConfig.from_settings()
        bill = BillMapper.map(data["bill"], config=config)
        result = PaymentValidator.validate(
            bill=bill,
            selected_line_items=data["selected_line_items"],
            rows=[PaymentRow.from_payload(r) for r in data["rows"]],
            config=config,
        )
        return Response(PaymentValidationResultSerializer(result).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Billing"],
        request=PaymentModesRequestSerializer,
        responses={200: PaymentModeSerializer(many=True)},
    )
    @action(detail=False, methods=["post"], url_path="payment-modes")
    def payment_modes(self, request):
        ser = PaymentModesRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        modes = BillSelectors.allowed_payment_modes(
            data["modes"],
            config=BillingConfig.from_settings(),
            exclude_waiver=data["exclude_waiver"],
        )
        return Response(PaymentModeSerializer(modes, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Billing"],
        request=ReceiptNumberRequestSerializer,
        responses={200: ReceiptNumberSerializer},
    )
    @action(detail=False, methods=["post"], url_path="receipt-number")
    def receipt_number(self, request):
        ser = ReceiptNumberRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        number = ReceiptNumbers.next_receipt_number(existing=data["existing"], today=data.get("today"))
        return Response(ReceiptNumberSerializer({"receipt_number": number}).data, status=status.HTTP_200_OK)
