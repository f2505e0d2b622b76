"""packdex - identifier index and reference graph for Bedrock content packs."""

__version__ = "0.1.0"
