# backend/src/routers/groups.py
# -----------------------------------------------------------------------------
# РОУТЕР: Группы — документы и удаление (вместе с файлами в хранилище)
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from starlette import status
from sqlalchemy.orm import Session

from src.db import get_db
from src.services.blob_store import BlobStore, get_blob_store
from src.services.errors import NotFoundError
from src.services.groups import (
    delete_expense,
    delete_group_with_documents,
    get_group_document_count,
)
from src.utils.http import error_response

router = APIRouter()


@router.get("/groups/{group_id}/documents/count")
def document_count(group_id: str, db: Session = Depends(get_db)):
    try:
        return {"count": get_group_document_count(db, group_id)}
    except NotFoundError as e:
        return error_response(e)


@router.delete("/groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(
    group_id: str,
    delete_documents: bool = Query(False, description="Удалить и файлы документов из хранилища"),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    try:
        delete_group_with_documents(db, group_id, delete_documents, store)
    except NotFoundError as e:
        return error_response(e)
    db.commit()


@router.delete("/groups/{group_id}/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group_expense(
    group_id: str,
    expense_id: str,
    participant_id: Optional[str] = Query(None, description="Кто удаляет (для журнала)"),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    try:
        delete_expense(db, group_id, expense_id, store, participant_id=participant_id)
    except NotFoundError as e:
        return error_response(e)
    db.commit()
