# vehicle_service/main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
from vehicle_service.routes import vehicle_router, health_router
from vehicle_service.database import connect_to_mongo, close_mongo_connection, init_db
from vehicle_service.config import get_settings
from vehicle_service.dependencies import get_event_sink
from vehicle_service.errors import register_exception_handlers
from vehicle_service.observability import add_middleware, configure_logging
from vehicle_service.services.directory import DirectoryClient
from vehicle_service.services.shopware import ShopwareClient
from vehicle_service.services.usage_events import UsageEventEmitter

settings = get_settings()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings.LOG_LEVEL)
    await connect_to_mongo()
    await init_db()
    app.state.directory = DirectoryClient(settings)
    app.state.shopware = ShopwareClient(settings, app.state.directory)
    app.state.usage = UsageEventEmitter.from_settings(settings, get_event_sink())
    yield
    # Shutdown
    await app.state.shopware.aclose()
    await app.state.directory.aclose()
    await close_mongo_connection()

def create_app() -> FastAPI:
    app = FastAPI(title="Vehicle Management Service", lifespan=lifespan)

    register_exception_handlers(app, production=settings.is_production)
    add_middleware(app)

    app.include_router(vehicle_router, prefix=settings.API_PREFIX, tags=["vehicles"])
    app.include_router(health_router, tags=["health"])

    @app.get("/")
    async def root():
        return {"message": "Vehicle Management API is running!"}

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "vehicle_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD
    )
