"""
Schemas Pydantic comuni
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.exceptions import AppException


class OperationResult(BaseModel):
    """
    Esito di un'operazione di business.

    Le procedure di propagazione e le azioni di magazzino non sollevano
    eccezioni per i fallimenti attesi: restituiscono un esito con
    `success=False`, un messaggio leggibile e l'eccezione originale
    (non serializzata) che il router può rilanciare.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    exception: Optional[AppException] = Field(default=None, exclude=True)

    @classmethod
    def ok(cls, **data: Any) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, exc: AppException, **data: Any) -> "OperationResult":
        return cls(
            success=False,
            error=exc.detail,
            error_code=exc.error_code,
            data=data,
            exception=exc,
        )

    def raise_for_error(self) -> "OperationResult":
        """Rilancia l'eccezione originale se l'operazione è fallita."""
        if not self.success:
            if self.exception is not None:
                raise self.exception
            raise AppException(self.error or "Operazione non riuscita", self.error_code)
        return self


class MessageResponse(BaseModel):
    """Risposta semplice con messaggio."""

    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
