# hm_cashier/api/urls.py
from __future__ import annotations

from rest_framework.routers import DefaultRouter

from hm_cashier.billing.api.views import BillComputationViewSet

router = DefaultRouter()

router.register(r"billing/bills", BillComputationViewSet, basename="billing-bills")

urlpatterns = router.urls
