"""Administrative routes: snapshot import and metrics."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from chat_workspace.api.dependencies import (
    get_app_settings,
    get_importer,
    get_realtime_server,
    get_user_lookup,
)
from chat_workspace.core.config import Settings
from chat_workspace.core.errors import SnapshotFormatError
from chat_workspace.core.logging import get_logger
from chat_workspace.core.metrics import metrics_response
from chat_workspace.ingest.snapshot import SnapshotImporter
from chat_workspace.models.dto import ImportRequest, ImportResponse
from chat_workspace.stores.realtime import InMemoryRealtimeStore
from chat_workspace.users.lookup import UserLookup

logger = get_logger(__name__)

router = APIRouter()


@router.post("/import", response_model=ImportResponse, response_model_by_alias=True, summary="Import workspace snapshots")
async def import_snapshots(
    request: ImportRequest,
    importer: SnapshotImporter = Depends(get_importer),
    server: InMemoryRealtimeStore = Depends(get_realtime_server),
    users: UserLookup = Depends(get_user_lookup),
    settings: Settings = Depends(get_app_settings),
) -> ImportResponse:
    paths = [Path(item) for item in request.paths]
    missing = [str(path) for path in paths if not path.expanduser().exists()]
    if missing:
        raise HTTPException(status_code=404, detail=f"Snapshot not found: {', '.join(missing)}")
    try:
        result = importer.import_paths(paths)
    except SnapshotFormatError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    for uid, record in result.presence.items():
        server.write(f"{settings.presence_root}/{uid}", record.to_mapping())
    # Imported users may replace cached identities.
    users.clear()
    logger.info("Import %s finished: %s", result.job_id, result.stats.to_dict())
    return ImportResponse(job_id=result.job_id, stats=result.stats.to_dict(), presence_seeded=len(result.presence))


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
