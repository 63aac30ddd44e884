"""snapredact — PII detection and annotation engine for screenshots."""

__version__ = "0.1.0"
