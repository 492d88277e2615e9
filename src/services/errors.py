# src/services/errors.py
# Ошибки сервисного слоя импорта/восстановления. Роутеры переводят их в JSON {"error": ...}.

from __future__ import annotations

from typing import Optional


class SplittoError(Exception):
    """Базовая ошибка домена; status_code — какой HTTP-код отдаст роутер."""

    status_code = 400

    def __init__(self, message: str, *, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ImportFormatError(SplittoError):
    """Файл не прочитался или в нём нет обязательных полей. До БД не доходим."""


class ReferentialIntegrityError(SplittoError):
    """Расход ссылается на участника, которого нет в группе. Вся транзакция откатывается."""

    def __init__(self, field: str, participant_id: str, expense_title: str):
        self.field = field
        self.participant_id = participant_id
        self.expense_title = expense_title
        super().__init__(
            f'Invalid {field}: {participant_id} not found in participants for expense "{expense_title}"'
        )


class ImportPreconditionError(SplittoError):
    """Операция не применима к текущему состоянию группы (нужен rollback, группы нет и т.п.)."""


class NotFoundError(SplittoError):
    status_code = 404


class BlobNotFound(SplittoError):
    status_code = 404


class BlobTransientError(SplittoError):
    status_code = 503
