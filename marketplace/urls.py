from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api.views.prometheus_metrics import order_metrics
from .ordering.api.views.order_views import OrderViewSet

app_name = "marketplace"

router = DefaultRouter()
router.register(r"orders", OrderViewSet, basename="order")

urlpatterns = [
    path("", include(router.urls)),
    path("metrics/", order_metrics, name="marketplace-metrics"),
]
