"""Root conftest — shared test configuration.

Invariants:
    - OpenTelemetry SDK providers are installed before any dvstore module is imported
    - span_exporter is cleared per test; metrics are cumulative, so assert deltas
    - make_definition builds definitions whose hashes and signatures verify
"""

import os

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

_metric_reader = InMemoryMetricReader()
_span_exporter = InMemorySpanExporter()
_tracer_provider = TracerProvider()
_tracer_provider.add_span_processor(SimpleSpanProcessor(_span_exporter))
trace.set_tracer_provider(_tracer_provider)
metrics.set_meter_provider(MeterProvider(metric_readers=[_metric_reader]))

# Ensure tests never pick up a developer's environment
for _key in list(os.environ):
    if _key.startswith("DVSTORE_"):
        del os.environ[_key]

import pytest  # noqa: E402

from dvstore.schemas.definition import Definition, Operator, encode_hex  # noqa: E402


@pytest.fixture
def span_exporter():
    _span_exporter.clear()
    yield _span_exporter
    _span_exporter.clear()


@pytest.fixture
def metric_total():
    """Return fn(name, **attributes) -> cumulative counter value / histogram count."""

    def total(name: str, **attributes) -> int:
        data = _metric_reader.get_metrics_data()
        if data is None:
            return 0
        value = 0
        for resource in data.resource_metrics:
            for scope in resource.scope_metrics:
                for metric in scope.metrics:
                    if metric.name != name:
                        continue
                    for point in metric.data.data_points:
                        attrs = dict(point.attributes)
                        if all(attrs.get(k) == v for k, v in attributes.items()):
                            value += getattr(point, "value", None) or getattr(point, "count", 0)
        return value

    return total


def build_operator(i: int) -> Operator:
    return Operator(
        address="0x" + f"{i + 1:02x}" * 20,
        enr=f"enr:-JG4QFI0llFYxSoTAHm24OrbgoVx77dL6Ehl1Ydys39JYoWcBhiHrRhMGXDTaXpm{i}",
        config_signature="0x" + "11" * 65,
        enr_signature="0x" + "22" * 65,
    )


@pytest.fixture
def make_definition():
    """Build a Definition with valid hashes. Keyword args override fields."""

    def build(**overrides) -> Definition:
        fields = {
            "name": "test cluster",
            "uuid": "0194FDC2-FA2F-FCC0-41D3-FF12045B73C8",
            "version": "v1.2.0",
            "timestamp": "2022-07-19T18:19:58+02:00",
            "num_validators": 2,
            "threshold": 3,
            "fee_recipient_address": "0x" + "ab" * 20,
            "withdrawal_address": "0x" + "cd" * 20,
            "dkg_algorithm": "default",
            "fork_version": "0x00001020",
            "operators": [build_operator(i) for i in range(4)],
        }
        fields.update(overrides)
        definition = Definition(**fields)
        definition.config_hash = encode_hex(definition.compute_config_hash())
        definition.definition_hash = encode_hex(definition.compute_definition_hash())
        return definition

    return build
