"""
Recommendation Service Client

HTTP client for the external knowledge processing backend, which classifies
raw text into category recommendations and runs the embedding similarity
search against existing knowledge.

Calls are made with `requests` in a worker thread so they do not block the
event loop.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from app.config import get_settings
from app.models.recommendation import RecommendationResponse

logger = logging.getLogger(__name__)


class RecommendationServiceError(Exception):
    """
    Raised when the recommendation backend is unreachable or returns an error.
    This is an upstream error (502).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _extract_error_detail(response: requests.Response) -> str:
    """Pull a human-readable detail string from an error response."""
    try:
        data = response.json()
        return data.get("detail") or data.get("error") or f"HTTP {response.status_code}"
    except ValueError:
        return response.text or f"HTTP {response.status_code}"


def _drop_nulls(data: Dict[str, Any]) -> Dict[str, Any]:
    """Remove null values so model defaults apply."""
    return {key: value for key, value in data.items() if value is not None}


class RecommendationClient:
    """
    Client for the recommendation backend.

    Endpoints:
    - POST /api/process-text
    - GET /api/categories
    - GET /api/stats
    - GET /health
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.recommendation_api_url).rstrip("/")
        self.timeout = timeout or settings.recommendation_timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def close(self) -> None:
        self.session.close()

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.ConnectionError as e:
            logger.error(f"Recommendation service unreachable at {url}: {e}")
            raise RecommendationServiceError(
                "Network error: Unable to connect to the knowledge processing service."
            ) from e
        except requests.Timeout as e:
            logger.error(f"Recommendation service timed out at {url}: {e}")
            raise RecommendationServiceError(
                "The knowledge processing service did not respond in time."
            ) from e
        except requests.RequestException as e:
            logger.error(f"Recommendation request failed: {e}", exc_info=True)
            raise RecommendationServiceError(f"Backend request failed: {e}") from e

        if not response.ok:
            detail = _extract_error_detail(response)
            logger.error(f"Recommendation service error {response.status_code}: {detail}")
            raise RecommendationServiceError(
                f"Backend processing failed: {detail}", status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise RecommendationServiceError(
                "Invalid response format from backend"
            ) from e

    async def _call(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        return await asyncio.to_thread(self._request, method, endpoint, **kwargs)

    async def process_text(
        self,
        text: str,
        threshold: float = 0.8,
        goal: Optional[str] = None,
    ) -> RecommendationResponse:
        """
        Classify text and find similar existing knowledge.

        Args:
            text: Raw text submitted by the user
            threshold: Cosine similarity above which content counts as similar
            goal: Optional learning goal used to score relevance

        Returns:
            RecommendationResponse

        Raises:
            RecommendationServiceError: On transport errors, HTTP errors or a
                response without recommendations
        """
        logger.info(
            f"Requesting recommendations (text_length={len(text)}, threshold={threshold}, "
            f"goal={'yes' if goal else 'no'})"
        )
        payload = {"text": text, "threshold": threshold, "goal": goal}
        data = await self._call("POST", "/api/process-text", json=payload)

        if data.get("status", "success") != "success" or "recommendations" not in data:
            raise RecommendationServiceError("Invalid response format from backend")

        data["recommendations"] = [
            _drop_nulls(rec) for rec in data.get("recommendations") or []
        ]
        response = RecommendationResponse(**_drop_nulls(data))

        logger.info(f"Received {len(response.recommendations)} recommendations")
        if response.similar_main_category:
            logger.info(
                f"Similar content found: {response.similar_knowledge} "
                f"({(response.similarity_score or 0) * 100:.1f}% similarity)"
            )
        return response

    async def get_categories(self) -> List[Any]:
        data = await self._call("GET", "/api/categories")
        return data.get("categories") or []

    async def get_stats(self) -> Dict[str, Any]:
        data = await self._call("GET", "/api/stats")
        return {
            "total_knowledge_items": data.get("total_knowledge_items", 0),
            "unique_tags": data.get("unique_tags", 0),
            "status": data.get("status", "success"),
        }

    async def health_check(self) -> Dict[str, Any]:
        return await self._call("GET", "/health")
