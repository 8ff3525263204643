"""clearpage: readable article retrieval behind paywalls and bot walls."""

__version__ = "0.1.0"
