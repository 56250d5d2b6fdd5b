"""Event-driven media ingestion: upload credentials, variant generation, publishing."""

__version__ = "0.1.0"
