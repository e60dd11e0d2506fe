# Archivo: modules/pipeline/schemas.py

from typing import List, Optional, Any
from pydantic import BaseModel, Field, field_validator, ConfigDict


def _to_text(v: Any) -> str:
    """Sheets and JSON clients send numbers for text columns; keep them as text."""
    if v is None:
        return ""
    return str(v) if not isinstance(v, str) else v


# --- Deal (lectura) ---

class Deal(BaseModel):
    """One row of the Pipeline sheet, normalized."""
    id: str
    firm_name: str = Field(..., alias="firmName")
    stage: str
    value: str = ""
    last_activity: str = Field("", alias="lastActivity")
    note: str = ""
    created_at: str = Field("", alias="createdAt")
    contact_count: int = Field(0, ge=0, alias="contactCount")
    email_count: int = Field(0, ge=0, alias="emailCount")
    meeting_count: int = Field(0, ge=0, alias="meetingCount")
    note_count: int = Field(0, ge=0, alias="noteCount")
    version: int = Field(0, ge=0)

    model_config = ConfigDict(
        populate_by_name=True,  # acepta firmName o firm_name
        from_attributes=True
    )

    @field_validator("value", "last_activity", "note", "created_at", mode="before")
    @classmethod
    def convert_to_string(cls, v: Any) -> str:
        return _to_text(v)


# --- Deal (escritura) ---

class DealCreate(BaseModel):
    """Fields accepted when creating a deal. firmName and stage are required."""
    firm_name: str = Field(..., min_length=1, alias="firmName")
    stage: str = Field(..., description="Stage id or human-readable title")
    value: str = ""
    last_activity: str = Field("", alias="lastActivity")
    note: str = ""
    contact_count: int = Field(0, ge=0, alias="contactCount")
    email_count: int = Field(0, ge=0, alias="emailCount")
    meeting_count: int = Field(0, ge=0, alias="meetingCount")
    note_count: int = Field(0, ge=0, alias="noteCount")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("firm_name", mode="before")
    @classmethod
    def strip_firm_name(cls, v: Any) -> str:
        return _to_text(v).strip()

    @field_validator("value", "last_activity", "note", mode="before")
    @classmethod
    def convert_to_string(cls, v: Any) -> str:
        return _to_text(v)


class DealUpdate(DealCreate):
    """Full record for PUT: the whole row is rewritten."""
    id: str = Field(..., min_length=1)
    created_at: str = Field("", alias="createdAt")
    # Si viene, se valida contra la versión actual de la fila (409 si no coincide)
    version: Optional[int] = Field(None, ge=0)

    @field_validator("created_at", mode="before")
    @classmethod
    def created_to_string(cls, v: Any) -> str:
        return _to_text(v)


# --- Respuestas ---

class DealsResponse(BaseModel):
    deals: List[Deal]
