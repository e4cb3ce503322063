"""Embeddings client for an OpenAI-compatible ``/embeddings`` endpoint."""

from __future__ import annotations

import logging

import httpx

from config.settings import get_settings

logger = logging.getLogger(__name__)


class Embedder:
    """Batches texts and posts them to ``{api_base}/embeddings``."""

    def __init__(
        self,
        model: str,
        api_base: str,
        api_key: str,
        timeout: float = 60,
        batch_size: int = 64,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._url = api_base.rstrip("/") + "/embeddings"
        self._api_key = api_key
        self._timeout = timeout
        self._batch_size = batch_size
        self._transport = transport

    @classmethod
    def from_settings(cls) -> Embedder:
        settings = get_settings()
        return cls(
            model=settings.embedding_model,
            api_base=settings.embedding_api_base,
            api_key=settings.embedding_api_key,
            timeout=settings.embedding_timeout,
            batch_size=settings.embedding_batch_size,
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        if not self._api_key:
            raise RuntimeError(
                "EMBEDDING_API_KEY not set — cannot embed course materials. "
                "Set it in .env or environment variables."
            )

        vectors: list[list[float]] = []
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                for start in range(0, len(texts), self._batch_size):
                    batch = texts[start:start + self._batch_size]
                    resp = await client.post(
                        self._url,
                        headers={"Authorization": f"Bearer {self._api_key}"},
                        json={"model": self._model, "input": batch, "encoding_format": "float"},
                    )
                    resp.raise_for_status()
                    data = sorted(resp.json()["data"], key=lambda item: item["index"])
                    vectors.extend(item["embedding"] for item in data)
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Embedding API error %d: %s",
                exc.response.status_code, exc.response.text[:200],
            )
            raise

        logger.debug("Embedded %d texts with %s", len(texts), self._model)
        return vectors
