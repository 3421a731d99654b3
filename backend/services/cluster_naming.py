"""Human-friendly topic names via the text-generation service.

Falls back to the cluster's frequent-word name whenever the service is
disabled, unreachable or returns nothing usable.
"""

import logging

import httpx

from services.topic_clustering import TopicCluster

logger = logging.getLogger(__name__)

MAX_SAMPLE_TITLES = 10
MAX_NAME_LENGTH = 60


class ClusterNamer:
    """Names topic clusters with a short label from the chatbot API."""

    def __init__(self, api_url: str | None = None, timeout: float = 30.0,
                 client: httpx.AsyncClient | None = None):
        self.api_url = api_url
        self.timeout = timeout
        self._client = client

    async def name(self, cluster: TopicCluster) -> str:
        if not self.api_url or not cluster.members:
            return cluster.name

        titles = "\n".join(f"- {m.text}" for m in cluster.members[:MAX_SAMPLE_TITLES])
        prompt = (
            "Give a short topic label (max 5 words) for these video titles. "
            f"Answer with the label only.\n{titles}"
        )
        try:
            answer = await self._query(prompt)
        except httpx.HTTPError as e:
            logger.warning(f"Cluster naming unavailable, using keywords: {e}")
            return cluster.name

        label = answer.strip().splitlines()[0].strip(" \"'.") if answer.strip() else ""
        if not label or len(label) > MAX_NAME_LENGTH:
            return cluster.name
        return label

    async def _query(self, prompt: str) -> str:
        if self._client is not None:
            response = await self._client.post(f"{self.api_url}/query", json={"query": prompt, "top_k": 1})
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.api_url}/query", json={"query": prompt, "top_k": 1})
        response.raise_for_status()
        return response.json().get("answer", "")
