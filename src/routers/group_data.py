# src/routers/group_data.py
# -----------------------------------------------------------------------------
# РОУТЕР: Данные группы — откат последнего импорта и проверка маркера
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.db import get_db
from src.services.errors import SplittoError
from src.services.groups import get_group_or_404
from src.services.imports import has_import_marker, undo_last_import
from src.utils.http import error_response, json_error

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/groups/{group_id}/data/delete")
def delete_group_data(
    group_id: str,
    payload: Optional[dict] = Body(None),
    db: Session = Depends(get_db),
):
    """Body: {"action": "undo-import"} — удалить всё, что пришло последним импортом."""
    try:
        get_group_or_404(db, group_id)

        if (payload or {}).get("action") != "undo-import":
            return json_error("Invalid action", 400)

        undo_last_import(db, group_id)
        db.commit()
        return {"success": True, "message": "Successfully undid last import"}

    except SplittoError as e:
        db.rollback()
        return error_response(e)
    except Exception as e:
        db.rollback()
        log.exception("delete operation error")
        return JSONResponse(
            {"error": "Failed to delete data", "details": str(e) or "Unknown error"},
            status_code=500,
        )


@router.get("/groups/{group_id}/has-import-marker")
def get_has_import_marker(group_id: str, db: Session = Depends(get_db)):
    try:
        return {"hasImportMarker": has_import_marker(db, group_id)}
    except Exception:
        log.exception("has-import-marker probe failed for group %s", group_id)
        return JSONResponse({"hasImportMarker": False}, status_code=500)
