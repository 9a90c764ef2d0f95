"""ecograph — versioned package catalog and deterministic build-order engine."""

__version__ = "0.1.0"
