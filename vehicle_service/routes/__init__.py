# vehicle_service/routes/__init__.py

from .vehicle import router as vehicle_router
from .health import router as health_router
