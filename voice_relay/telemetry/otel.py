"""
OpenTelemetry (opcional, extra [telemetry]):
- Si TELEMETRY_ENABLED=true y OTEL_EXPORTER_OTLP_ENDPOINT está definido,
  se inicializa la traza básica.
- No se envía texto ni audio; solo atributos genéricos.
"""
import logging

from ..core.config import settings

log = logging.getLogger("voice_relay.telemetry")

def setup_otel() -> bool:
    if not settings.TELEMETRY_ENABLED or not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as e:
        # No romper la app si falta el extra de OTEL
        log.warning(f"[otel] TELEMETRY_ENABLED=true pero falta opentelemetry: {e}")
        return False

    resource = Resource.create({"service.name": "voice-relay"})
    provider = TracerProvider(resource=resource)
    span_exporter = OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT)
    provider.add_span_processor(BatchSpanProcessor(span_exporter))
    trace.set_tracer_provider(provider)
    return True
