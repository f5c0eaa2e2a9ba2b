"""
AI analysis client.

Sends one photo to the image-analysis function and normalises the answer:
ids are assigned on receipt and missing marker coordinates are synthesised.
Every failure surfaces as AnalysisServiceError carrying a plain-language
message for the user; the technical cause only goes to the log.
"""

import logging
from typing import Any, Optional

import httpx

from app.core.config import get_settings
from app.models.enums import ConsistencyMode
from app.schemas.analysis import AnalysisResult, DetectedObject, new_id
from app.schemas.base import BaseSchema
from app.services.markers import assign_markers

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = (
    "Serviço de análise temporariamente indisponível. "
    "Tente novamente em alguns instantes."
)
CONNECTION_MESSAGE = "Problemas de conexão. Verifique sua internet e tente novamente."
TIMEOUT_MESSAGE = (
    "Análise demorou muito para processar. "
    "Tente com uma imagem menor ou aguarde alguns minutos."
)
GENERIC_MESSAGE = "Análise da foto falhou. Tente novamente ou verifique se a imagem está válida."

ENTRY_INSTRUCTIONS = (
    "Analyze this ENTRY image thoroughly and consistently. Focus on accurate object "
    "detection and condition assessment that can be reliably reproduced."
)
EXIT_INSTRUCTIONS = (
    "Analyze this EXIT image and compare carefully with the provided ENTRY objects. "
    "Be VERY conservative - only report differences if you are absolutely certain objects "
    "have genuinely changed condition, been added, or removed. If objects appear identical, "
    "maintain the same condition assessment."
)
EXIT_DUPLICATE_INSTRUCTIONS = (
    "Analyze this EXIT image and compare carefully with the provided ENTRY objects. "
    "CRITICAL: This appears to be the same or very similar image as the entry. Be EXTREMELY "
    "conservative - only report differences if you are 100% certain they exist. When in doubt, "
    "keep the same condition."
)


class AnalysisServiceError(Exception):
    """The analysis collaborator failed; `user_message` is safe to show."""

    def __init__(self, user_message: str, cause: Optional[BaseException] = None):
        super().__init__(user_message)
        self.user_message = user_message
        self.cause = cause


def image_seed(url: str) -> int:
    """Stable 32-bit string hash of the image URL, sent for reproducibility."""
    h = 0
    for ch in url:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def friendly_error_message(exc: BaseException) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return TIMEOUT_MESSAGE
    if isinstance(exc, httpx.HTTPStatusError):
        return UNAVAILABLE_MESSAGE
    if isinstance(exc, httpx.TransportError):
        return CONNECTION_MESSAGE
    return GENERIC_MESSAGE


class AnalysisRequest(BaseSchema):
    image_url: str
    room_name: str
    entry_objects: Optional[list[DetectedObject]] = None
    is_duplicate_image: bool = False

    @property
    def consistency_mode(self) -> ConsistencyMode:
        return ConsistencyMode.COMPARISON if self.entry_objects is not None else ConsistencyMode.INITIAL

    @property
    def instructions(self) -> str:
        if self.entry_objects is None:
            return ENTRY_INSTRUCTIONS
        return EXIT_DUPLICATE_INSTRUCTIONS if self.is_duplicate_image else EXIT_INSTRUCTIONS

    def to_body(self) -> dict[str, Any]:
        return {
            "imageUrl": self.image_url,
            "roomName": self.room_name,
            "entryObjects": (
                [o.model_dump(mode="json", by_alias=True) for o in self.entry_objects]
                if self.entry_objects is not None else None
            ),
            "imageSeed": image_seed(self.image_url),
            "isDuplicateImage": self.is_duplicate_image,
            "consistencyMode": self.consistency_mode.value,
            "analysisInstructions": self.instructions,
        }


def normalize_analysis(payload: Any) -> AnalysisResult:
    """Assign fresh ids, clear manual flags and synthesise markers."""
    if not isinstance(payload, dict):
        raise ValueError("analysis payload is not a JSON object")
    analysis = AnalysisResult.from_payload(payload)
    objects = [o.model_copy(update={"id": new_id(), "is_manual": False}) for o in analysis.objects_detected]
    return analysis.model_copy(update={
        "objects_detected": assign_markers(objects),
        "issues": [i.model_copy(update={"id": new_id(), "is_manual": False}) for i in analysis.issues],
        "finishes": [f.model_copy(update={"id": new_id(), "is_manual": False}) for f in analysis.finishes],
    })


class AnalysisClient:
    """Client for the image-analysis function."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.analysis_service_url
        self.api_key = api_key if api_key is not None else settings.analysis_api_key
        self.timeout = timeout or settings.analysis_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Analyse one photo. Raises AnalysisServiceError on any failure."""
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(self.base_url, json=request.to_body(), headers=self._headers())
                response.raise_for_status()
                analysis = normalize_analysis(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                f"[ANALYSIS] Request failed for {request.image_url}: {e!r}",
                extra={"room": request.room_name},
            )
            raise AnalysisServiceError(friendly_error_message(e), cause=e) from e

        logger.info(
            f"[ANALYSIS] {len(analysis.objects_detected)} objects, {len(analysis.issues)} issues "
            f"({request.consistency_mode.value})",
            extra={"room": request.room_name},
        )
        return analysis


def get_analysis_client() -> AnalysisClient:
    return AnalysisClient()
