from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_services
from app.services.container import Services

router = APIRouter()

@router.get("/ready")
async def readiness_probe(services: Services = Depends(get_services)):
    if not await services.store.health_check():
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": False})
    return {"status": "ready", "database": True}

@router.get("/live")
def liveness_probe():
    return {"status": "alive"}
