"""
FeedPress Services
==================

Shared service layer used across interfaces (CLI, web front end, scheduler).
"""

from .action_service import ActionService, ActionRequest, ActionName
from .factory import build_services, ServiceContainer

__all__ = [
    'ActionService',
    'ActionRequest',
    'ActionName',
    'build_services',
    'ServiceContainer',
]
