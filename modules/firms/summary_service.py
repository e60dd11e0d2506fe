# Archivo: modules/firms/summary_service.py
"""
One-line firm summaries from the OpenAI chat completions API.
Results are cached per firm name for the life of the process.
"""

import logging
from typing import Dict, Optional

import httpx

from core.config import settings

logger = logging.getLogger("FirmSummary")


class SummaryUnavailable(Exception):
    """No API key configured."""


class SummaryFailed(Exception):
    """The model call failed or returned nothing usable."""


class FirmSummaryService:

    # Caché a nivel de clase (compartida entre instancias)
    _cache: Dict[str, str] = {}
    max_cache_size = 256

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    @staticmethod
    def _build_payload(name: str) -> dict:
        system_prompt = (
            "You are a concise sales research assistant. Describe investment and "
            "financial firms in a single sentence. Use cautious language and do not "
            "invent facts; if you do not recognize the firm, say so in one line."
        )
        user_prompt = (
            f"Firm: {name}\n"
            "Return one line (at most 30 words) describing what this firm does."
        )
        return {
            "model": settings.OPENAI_MODEL,
            "temperature": 0.3,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }

    async def summarize_firm(self, name: str) -> str:
        key = name.strip().lower()
        if key in self._cache:
            return self._cache[key]

        if not settings.OPENAI_API_KEY:
            raise SummaryUnavailable("OPENAI_API_KEY is not set.")

        headers = {"Authorization": f"Bearer {settings.OPENAI_API_KEY}", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(
                timeout=settings.OPENAI_TIMEOUT_SECONDS, transport=self.transport
            ) as client:
                resp = await client.post(settings.OPENAI_URL, json=self._build_payload(name), headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            logger.error(f"Resumen de '{name}' falló: {e!r}")
            raise SummaryFailed(f"Summary request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise SummaryFailed("Unexpected response from the language model") from e

        lines = [line.strip() for line in (content or "").splitlines() if line.strip()]
        if not lines:
            raise SummaryFailed("The language model returned an empty summary")

        summary = lines[0]
        self._remember(key, summary)
        return summary

    @classmethod
    def _remember(cls, key: str, summary: str) -> None:
        # Se descarta la entrada más antigua (orden de inserción)
        while len(cls._cache) >= cls.max_cache_size:
            cls._cache.pop(next(iter(cls._cache)))
        cls._cache[key] = summary

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()


def get_firm_summary_service() -> FirmSummaryService:
    return FirmSummaryService()
