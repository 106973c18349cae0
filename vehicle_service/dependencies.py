# vehicle_service/dependencies.py
from fastapi import Depends, Request

from vehicle_service.database import get_database
from vehicle_service.observability import EventSink
from vehicle_service.services.directory import DirectoryClient
from vehicle_service.services.shopware import ShopwareClient
from vehicle_service.services.usage_events import UsageEventEmitter
from vehicle_service.services.vehicle_operations import VehicleOperations
from vehicle_service.services.vehicle_store import VehicleStore

_sink = EventSink()


async def get_vehicle_store(database=Depends(get_database)) -> VehicleStore:
    return VehicleStore(database)


def get_event_sink() -> EventSink:
    return _sink


def get_directory_client(request: Request) -> DirectoryClient:
    return request.app.state.directory


def get_shopware_client(request: Request) -> ShopwareClient:
    return request.app.state.shopware


def get_usage_emitter(request: Request) -> UsageEventEmitter:
    return request.app.state.usage


async def get_vehicle_operations(
    store: VehicleStore = Depends(get_vehicle_store),
    shopware: ShopwareClient = Depends(get_shopware_client),
    directory: DirectoryClient = Depends(get_directory_client),
    usage: UsageEventEmitter = Depends(get_usage_emitter),
    sink: EventSink = Depends(get_event_sink),
) -> VehicleOperations:
    return VehicleOperations(store, shopware, directory, usage, sink)
