"""PocketBase-backed remote store for shared translations and caption intervals.

Talks to the PocketBase records API over httpx. Field names are camelCase
and timestamps are epoch milliseconds so records stay readable by the
browser extension that shares the same collections.
"""

from __future__ import annotations

import httpx

from dualsub.core.config import StoreConfig
from dualsub.core.errors import NetworkFailure, RateLimited
from dualsub.core.models import CacheKey, CaptionInterval, TranslationRecord
from dualsub.recorder.export import normalize_interval

PAGE_SIZE = 200


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _retry_after(response: httpx.Response) -> float | None:
    """Parse a numeric Retry-After header; HTTP-date values are ignored."""
    try:
        return float(response.headers.get("Retry-After", ""))
    except ValueError:
        return None


def _record_to_payload(record: TranslationRecord) -> dict:
    return {
        "key": record.key.digest(),
        "videoId": record.video_id,
        "model": record.model,
        "sourceLang": record.source_lang,
        "targetLang": record.target_lang,
        "sourceText": record.source_text,
        "translation": record.translation,
        "updatedAt": int(record.updated_at * 1000),
    }


def _payload_to_record(item: dict) -> TranslationRecord:
    return TranslationRecord(
        video_id=item.get("videoId", ""),
        model=item.get("model", ""),
        source_lang=item.get("sourceLang", ""),
        target_lang=item.get("targetLang", ""),
        source_text=item.get("sourceText", ""),
        translation=item.get("translation", ""),
        updated_at=float(item.get("updatedAt") or 0) / 1000.0,
    )


def _interval_to_payload(interval: CaptionInterval) -> dict:
    return {
        "videoId": interval.video_id,
        "startTime": interval.start_time,
        "endTime": interval.end_time,
        "sourceText": interval.source_text,
        "translation": interval.translation,
        "translationSource": interval.translation_source or "",
    }


class PocketBaseStore:
    """Remote tier. Every transport or HTTP error surfaces as ``NetworkFailure``."""

    def __init__(
        self,
        base_url: str,
        collection: str = "dualsub_translations",
        interval_collection: str = "dualsub_captions",
        token: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.collection = collection
        self.interval_collection = interval_collection
        headers = {"Authorization": token} if token else {}
        self._client = client or httpx.AsyncClient(timeout=timeout, headers=headers)

    @classmethod
    def from_config(cls, config: StoreConfig) -> PocketBaseStore:
        return cls(
            config.remote_url,
            collection=config.remote_collection,
            interval_collection=config.remote_interval_collection,
            token=config.remote_token,
            timeout=config.remote_timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _records_url(self, collection: str) -> str:
        return f"{self.base_url}/api/collections/{collection}/records"

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise RateLimited(
                    f"PocketBase rate limited: {url}",
                    retry_after=_retry_after(e.response),
                ) from e
            raise NetworkFailure(f"PocketBase {method} {url}: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise NetworkFailure(f"PocketBase {method} {url}: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise NetworkFailure(f"PocketBase returned invalid JSON from {url}") from e

    async def _find_raw(self, key: CacheKey) -> dict | None:
        data = await self._request(
            "GET",
            self._records_url(self.collection),
            params={"filter": f"key={_quote(key.digest())}", "perPage": 1},
        )
        items = data.get("items") or []
        return items[0] if items else None

    async def find(self, key: CacheKey) -> TranslationRecord | None:
        item = await self._find_raw(key)
        if item is None or not item.get("translation"):
            return None
        return _payload_to_record(item)

    async def upsert(self, record: TranslationRecord) -> None:
        payload = _record_to_payload(record)
        existing = await self._find_raw(record.key)
        if existing is None:
            await self._request("POST", self._records_url(self.collection), json=payload)
        else:
            await self._request(
                "PATCH",
                f"{self._records_url(self.collection)}/{existing['id']}",
                json=payload,
            )

    async def save_interval(self, interval: CaptionInterval) -> None:
        await self._request(
            "POST",
            self._records_url(self.interval_collection),
            json=_interval_to_payload(interval),
        )

    async def fetch_intervals(self, video_id: str) -> list[CaptionInterval]:
        intervals: list[CaptionInterval] = []
        page = 1
        while True:
            data = await self._request(
                "GET",
                self._records_url(self.interval_collection),
                params={
                    "filter": f"videoId={_quote(video_id)}",
                    "perPage": PAGE_SIZE,
                    "page": page,
                    "sort": "startTime",
                },
            )
            for item in data.get("items") or []:
                interval = normalize_interval(item)
                if interval is not None:
                    intervals.append(interval)
            if page >= int(data.get("totalPages") or 1):
                return intervals
            page += 1
