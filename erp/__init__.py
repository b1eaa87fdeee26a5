"""DNA-driven purchase order approval service."""

__version__ = "0.1.0"
