"""Cross-cutting infrastructure: logging, metrics, storage, tracing."""
