"""
Unit tests for the tracing decorator.
"""

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from silent_money.exceptions import NotFoundError, SilentMoneyError
from shared.tracing import trace_function

_exporter = InMemorySpanExporter()


@pytest.fixture(scope="module", autouse=True)
def tracer_provider():
    provider = trace.get_tracer_provider()
    if not isinstance(provider, TracerProvider):
        provider = TracerProvider()
        trace.set_tracer_provider(provider)
    provider.add_span_processor(SimpleSpanProcessor(_exporter))
    yield provider


@pytest.fixture
def spans():
    _exporter.clear()
    yield _exporter
    _exporter.clear()


class TestTraceFunction:
    """Test span creation and status."""

    @pytest.mark.asyncio
    async def test_async_success(self, spans):
        @trace_function("ideas.lookup", attributes={"asset.type": "idea"})
        async def lookup(slug):
            return slug.upper()

        assert await lookup("solar") == "SOLAR"

        [span] = spans.get_finished_spans()
        assert span.name == "ideas.lookup"
        assert span.attributes["asset.type"] == "idea"
        assert span.status.status_code is StatusCode.OK

    @pytest.mark.asyncio
    async def test_expected_error_is_not_a_failure(self, spans):
        @trace_function("ideas.lookup", expected=(SilentMoneyError,))
        async def lookup(slug):
            raise NotFoundError("Idea not found")

        with pytest.raises(NotFoundError):
            await lookup("missing")

        [span] = spans.get_finished_spans()
        assert span.status.status_code is StatusCode.UNSET
        assert span.attributes["error.expected"] is True
        assert span.events[0].name == "exception"

    def test_sync_unexpected_error(self, spans):
        @trace_function(expected=(SilentMoneyError,))
        def explode():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            explode()

        [span] = spans.get_finished_spans()
        assert span.name.endswith("explode")
        assert span.status.status_code is StatusCode.ERROR
