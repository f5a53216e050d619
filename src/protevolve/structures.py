from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)

DEFAULT_SOURCES = (
    "https://files.rcsb.org/view/{pdb_id}.pdb",
    "https://models.rcsb.org/{pdb_id}.pdb",
)


class StructureFetcher:
    """Fetch PDB text for a template id from an ordered list of sources.

    The first source answering 2xx with a non-empty body wins. There is no
    per-source retry: fallback is across sources, not attempts.
    """

    def __init__(
        self,
        sources: Sequence[str] = DEFAULT_SOURCES,
        *,
        timeout_sec: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not sources:
            raise ValueError("at least one structure source is required")
        self.sources: List[str] = list(sources)
        self.timeout_sec = timeout_sec
        self._transport = transport

    def urls_for(self, pdb_id: str) -> List[str]:
        pid = pdb_id.strip().upper()
        return [s.format(pdb_id=pid) for s in self.sources]

    async def fetch(self, pdb_id: Optional[str]) -> Optional[str]:
        if not pdb_id or not pdb_id.strip():
            return None

        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout_sec, follow_redirects=True) as client:
            for url in self.urls_for(pdb_id):
                try:
                    r = await client.get(url)
                except httpx.HTTPError as e:
                    logger.warning("Error fetching %s: %s", url, e)
                    continue
                if not r.is_success:
                    logger.warning("Failed to fetch from %s, status: %s", url, r.status_code)
                    continue
                if not r.text.strip():
                    logger.warning("Empty structure body from %s", url)
                    continue
                logger.info("Fetched structure from %s", url)
                return r.text

        logger.error("Failed to fetch structure for %s from all sources.", pdb_id.strip().upper())
        return None
