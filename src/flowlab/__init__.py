"""flowlab — live transform-and-execute playground for diagram component examples."""

__version__ = "0.3.0"
