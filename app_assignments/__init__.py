"""Export Entra ID app role assignments and service principals to CSV."""

__version__ = "0.1.0"
