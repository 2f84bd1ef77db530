"""Multi-tenant authorization and workflow-state core for the freight marketplace."""

__version__ = "0.1.0"
