"""Hub node building blocks: unit data model, signatures, statistics, transport and helpers."""

__version__ = "0.1.0"