"""
AquaWatch Analytics
===================

Analytics and measurement-reconciliation core for aquaculture monitoring.

The package is wired together by :class:`aquawatch.services.container.ServiceContainer`;
nothing in here starts background work at import time.
"""

__version__ = "1.0.0"
