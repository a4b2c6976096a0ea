"""Token metadata upload to the pump.fun IPFS pinning endpoint."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from loguru import logger

from pumpbundler.protocol.exceptions import TransportError

DEFAULT_UPLOAD_URL = "https://pump.fun/api/ipfs"
UPLOAD_TIMEOUT = 60.0  # seconds

# The endpoint rejects requests that don't look like they came from the web form
_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:126.0) Gecko/20100101 Firefox/126.0"
    ),
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.5",
    "Referer": "https://www.pump.fun/create",
    "Origin": "https://www.pump.fun",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-origin",
}


@dataclass
class CreateTokenMetadata:
    name: str
    symbol: str
    description: str
    file: bytes
    file_name: str = "image.png"
    twitter: str | None = None
    telegram: str | None = None
    website: str | None = None

    def form_fields(self) -> dict[str, str]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "description": self.description,
            "twitter": self.twitter or "",
            "telegram": self.telegram or "",
            "website": self.website or "",
            "showName": "true",
        }


@dataclass
class TokenMetadataResult:
    metadata_uri: str
    metadata: dict


class MetadataUploader:
    """Pins image + metadata and returns the URI used by the create instruction."""

    def __init__(self, upload_url: str = DEFAULT_UPLOAD_URL, *, timeout: float = UPLOAD_TIMEOUT) -> None:
        self._upload_url = upload_url
        self._http = httpx.AsyncClient(timeout=timeout, headers=_BROWSER_HEADERS)

    async def upload(self, meta: CreateTokenMetadata) -> TokenMetadataResult:
        try:
            resp = await self._http.post(
                self._upload_url,
                data=meta.form_fields(),
                files={"file": (meta.file_name, meta.file)},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Metadata upload {type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise TransportError(f"Metadata upload HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError("Metadata upload returned non-JSON body") from e

        uri = data.get("metadataUri")
        if not uri:
            raise TransportError("Metadata upload response has no metadataUri")

        logger.info(f"[METADATA] Uploaded {meta.symbol}: {uri}")
        return TokenMetadataResult(metadata_uri=uri, metadata=data.get("metadata") or {})

    async def close(self) -> None:
        await self._http.aclose()
