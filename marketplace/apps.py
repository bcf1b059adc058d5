import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class MarketplaceConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "marketplace"

    def ready(self):
        if getattr(settings, "OTEL_TRACING_ENABLED", False):
            from marketplace.infra.observability.tracing import setup_tracing

            setup_tracing(
                service_name=getattr(settings, "OTEL_SERVICE_NAME", "marketplace-service"),
                console_export=getattr(settings, "OTEL_CONSOLE_EXPORT", False),
            )
            logger.info("OpenTelemetry tracing enabled")
