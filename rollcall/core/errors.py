"""
Error taxonomy for attendance sync.

Every error a consumer may see derives from SyncError and carries the HTTP
status the API answers with plus the message shown to the user.
"""

from typing import Optional


class SyncError(Exception):
    status_code: int = 400
    prefix: str = ""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def user_message(self) -> str:
        if self.prefix:
            return f"{self.prefix}: {self.message}".upper()
        return self.message.upper()


class Unauthenticated(SyncError):
    """No session identity could be resolved for the write."""

    status_code = 401

    def __init__(self, message: str = "Sessão expirada. Faça login novamente."):
        super().__init__(message)


class Busy(SyncError):
    """The cell (or the whole grid, during a batch) already has a write in flight."""

    status_code = 409

    def __init__(self, message: str = "Aguarde a gravação em andamento."):
        super().__init__(message)


class InvalidDate(SyncError):
    status_code = 422

    def __init__(self, value: object):
        super().__init__(f"Data inválida: {value!r}")
        self.value = value


class RemoteWriteFailure(SyncError):
    """
    A delete/upsert against the remote store failed.
    Raised only after the optimistic local state has been rolled back.
    """

    status_code = 502
    prefix = "Erro ao salvar frequência"

    def __init__(self, message: Optional[str] = None, batch: bool = False):
        super().__init__(message or "Erro de conexão")
        if batch:
            self.prefix = "Erro ao salvar em lote"
        self.batch = batch


class RemoteStoreError(Exception):
    """Transport or API error raised by a RemoteStore adapter."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class RemoteReadFailure(SyncError):
    """A reload from the remote store failed; the cache keeps its previous contents."""

    status_code = 502
    prefix = "Erro ao carregar dados"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Erro de conexão")
