# certtrust/routers/__init__.py
# Router module initialization

from .certificates import router as certificates_router
from .connections import router as connections_router
from .health import router as health_router

__all__ = [
    'certificates_router',
    'connections_router',
    'health_router',
]
