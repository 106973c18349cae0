# vehicle_service/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from vehicle_service.database import get_database, ping

router = APIRouter()


@router.get("/health")
async def health_check(database=Depends(get_database)):
    """Service liveness plus a MongoDB ping. 503 when the database is unreachable."""
    database_online = database is not None and await ping(database)
    body = {
        "status": "Healthy" if database_online else "Unhealthy",
        "database": "online" if database_online else "offline",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return JSONResponse(status_code=200 if database_online else 503, content=body)
