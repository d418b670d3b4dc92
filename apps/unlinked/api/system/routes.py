from fastapi import APIRouter, Depends

from unlinked.connectors.mongo_connector import MongoConnector
from unlinked.core.dependencies import get_mongo_connector, get_realtime
from unlinked.realtime.server import Realtime

router = APIRouter(tags=["system"])


@router.get("/healthz")
def health():
    return {"ok": True}


@router.get("/readyz")
def ready(
    mongo: MongoConnector = Depends(get_mongo_connector),
    realtime: Realtime = Depends(get_realtime),
):
    mongo.ping()
    return {"ok": True, "mongo": True, "online_users": len(realtime.presence.online_users())}
