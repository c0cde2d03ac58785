"""
Hospital lookup oracle.

Given a position, return free text describing nearby hospitals plus links
to the ones that could be resolved. find() never raises: any backend
failure becomes an apology text with no links, which the escalation treats
as a normal (non-retried) result.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from google import genai
from google.genai import types

from domain.errors import LookupFailure
from models.alert import HospitalLink, HospitalLookupResult
from models.config import HospitalLookupConfig

logger = logging.getLogger(__name__)

LOOKUP_ERROR_TEXT = "Could not retrieve hospital information due to an error."
NO_HOSPITAL_INFO_TEXT = "No hospital information found."

PROMPT_TEMPLATE = (
    "I am in an emergency situation at latitude {lat} and longitude {lng}. "
    "Please identify the 3 nearest hospitals or emergency medical centers. "
    "For each, provide their name and their official phone number. "
    "I need to request an ambulance."
)


def lookup_error_result() -> HospitalLookupResult:
    return HospitalLookupResult(text=LOOKUP_ERROR_TEXT, links=[])


class HospitalLookup(ABC):
    """Base class: subclasses implement _query(), callers use find()."""

    name = "base"

    async def find(self, lat: float, lng: float) -> HospitalLookupResult:
        try:
            return await self._query(lat, lng)
        except Exception:
            logger.exception(f"Error finding hospitals via {self.name} lookup")
            return lookup_error_result()

    @abstractmethod
    async def _query(self, lat: float, lng: float) -> HospitalLookupResult:
        """Backend query. May raise; find() maps failures to the fallback."""


class StaticHospitalLookup(HospitalLookup):
    """Hospitals listed in configuration, for offline deployments and tests."""

    name = "static"

    def __init__(self, hospitals: List[HospitalLink], text: str = "Nearby hospitals from local configuration."):
        self._hospitals = list(hospitals)
        self._text = text

    async def _query(self, lat: float, lng: float) -> HospitalLookupResult:
        if not self._hospitals:
            return HospitalLookupResult(text=NO_HOSPITAL_INFO_TEXT, links=[])
        return HospitalLookupResult(text=self._text, links=list(self._hospitals))


def extract_hospital_links(response: Any) -> List[HospitalLink]:
    """Pull Google Maps grounding chunks out of a Gemini response."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    links: List[HospitalLink] = []
    for chunk in chunks:
        maps = getattr(chunk, "maps", None)
        uri = getattr(maps, "uri", None) if maps is not None else None
        if not uri:
            continue
        links.append(
            HospitalLink(
                title=getattr(maps, "title", None) or uri,
                uri=uri,
                # Grounding chunks rarely carry a phone; the model text usually does
                phone=getattr(maps, "phone", None) or "N/A",
            )
        )
    return links


class GeminiHospitalLookup(HospitalLookup):
    """
    Gemini with Google Maps grounding.

    The client is created on first use so a missing API key surfaces as a
    lookup failure (fallback result) instead of a startup crash.
    """

    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: str = "gemini-2.5-flash", client: Any = None):
        self._api_key = api_key
        self._model = model
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise LookupFailure("No Gemini API key configured")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def _query(self, lat: float, lng: float) -> HospitalLookupResult:
        client = self._get_client()
        response = await client.aio.models.generate_content(
            model=self._model,
            contents=PROMPT_TEMPLATE.format(lat=lat, lng=lng),
            config=types.GenerateContentConfig(
                tools=[types.Tool(google_maps=types.GoogleMaps())],
                tool_config=types.ToolConfig(
                    retrieval_config=types.RetrievalConfig(
                        lat_lng=types.LatLng(latitude=lat, longitude=lng),
                    ),
                ),
            ),
        )
        links = extract_hospital_links(response)
        logger.info(f"Gemini hospital lookup returned {len(links)} linked hospitals")
        return HospitalLookupResult(text=response.text or NO_HOSPITAL_INFO_TEXT, links=links)


def create_hospital_lookup(cfg: HospitalLookupConfig) -> HospitalLookup:
    """Build the configured lookup backend."""
    if cfg.backend == "static":
        hospitals = [
            HospitalLink(
                title=h.get("title", ""),
                uri=h.get("uri", ""),
                phone=h.get("phone") or "N/A",
            )
            for h in cfg.static_hospitals
        ]
        logger.info(f"Using static hospital lookup ({len(hospitals)} hospitals)")
        return StaticHospitalLookup(hospitals, text=cfg.static_text)

    api_key = os.environ.get(cfg.api_key_env, "").strip()
    if not api_key:
        logger.warning(f"{cfg.api_key_env} not set; hospital lookups will return the error fallback")
    return GeminiHospitalLookup(api_key=api_key or None, model=cfg.model)
