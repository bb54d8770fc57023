"""
deployment/ - REST API for host clients
"""

from .api import create_fastapi_app, SwitchSetRequest, SwitchRepresentation

__all__ = [
    "create_fastapi_app",
    "SwitchSetRequest",
    "SwitchRepresentation",
]
