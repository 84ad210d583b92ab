"""Claims adjudication: rule extraction from guide documents and claim validation."""

__version__ = "0.1.0"
