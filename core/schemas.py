from pydantic import BaseModel, Field

class ErrorResponse(BaseModel):
    """Envelope uniforme de error para toda la API JSON."""
    error: str = Field(..., description="Mensaje legible para el usuario")

class AckResponse(BaseModel):
    """Acknowledgement for writes that return no record."""
    success: bool = True
