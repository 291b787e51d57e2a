"""LiftLog Analytics — workout history analytics engine."""
__version__ = "0.1.0"
