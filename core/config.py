import os
from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()

class Settings(BaseSettings):
    # --- Google Sheets (datastore) ---
    GOOGLE_SPREADSHEET_ID: str = os.getenv("GOOGLE_SPREADSHEET_ID", "")
    GOOGLE_SERVICE_ACCOUNT_EMAIL: str = os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL", "")
    # Env files usually carry the PEM with literal "\n" sequences
    GOOGLE_PRIVATE_KEY: str = os.getenv("GOOGLE_PRIVATE_KEY", "").replace("\\n", "\n")
    GOOGLE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"
    GOOGLE_SCOPES: str = "https://www.googleapis.com/auth/spreadsheets"

    PIPELINE_SHEET: str = os.getenv("PIPELINE_SHEET", "Pipeline")
    MEETINGS_SHEET: str = os.getenv("MEETINGS_SHEET", "Meetings")
    FIRMS_SHEET: str = os.getenv("FIRMS_SHEET", "Firms")

    SHEETS_TIMEOUT_SECONDS: float = float(os.getenv("SHEETS_TIMEOUT_SECONDS", "30"))

    # --- Kanban board ---
    BOARD_REFRESH_SECONDS: float = float(os.getenv("BOARD_REFRESH_SECONDS", "30"))
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8000")

    # --- Language model (firm summaries) ---
    OPENAI_API_KEY: str = (os.getenv("OPENAI_API_KEY") or "").strip().strip("\"'")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_TIMEOUT_SECONDS: float = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "20"))

settings = Settings()
