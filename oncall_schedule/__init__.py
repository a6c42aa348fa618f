# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""On-call schedule service: register team rotations, ask who is on call."""

__version__ = "1.0.0"
