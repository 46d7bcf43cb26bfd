"""Workshop onboarding - actor verification and approval service."""

__version__ = "0.1.0"
