"""
Judge0 batch execution client
=============================
Wraps the two batch endpoints the judge relies on:

- POST /submissions/batch           -> one token per submitted item
- GET  /submissions/batch?tokens=.. -> current state of every token

Polling is bounded: the client waits `poll_interval` seconds between
attempts (optionally growing by `backoff` up to `max_poll_interval`) and
gives up with an UpstreamServiceError once `poll_timeout` has elapsed.
"""
import asyncio
import enum
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .config import Config
from .errors import UpstreamServiceError

logger = logging.getLogger(__name__)

# Judge0 status ids
STATUS_IN_QUEUE = 1
STATUS_PROCESSING = 2
STATUS_ACCEPTED = 3

RESULT_FIELDS = "token,stdout,stderr,compile_output,status,time,memory,language_id"


class Language(enum.Enum):
    """Supported languages and their Judge0 language ids"""
    CPP = 54
    JAVA = 62
    JAVASCRIPT = 63
    PYTHON = 71

    @property
    def judge0_id(self) -> int:
        return self.value

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional["Language"]:
        if not name:
            return None
        return cls.__members__.get(str(name).strip().upper())

    @classmethod
    def from_id(cls, language_id: Any) -> Optional["Language"]:
        try:
            return cls(int(language_id))
        except (TypeError, ValueError):
            return None


_DISPLAY_NAMES = {
    Language.CPP: "CPP",
    Language.JAVA: "Java",
    Language.JAVASCRIPT: "JavaScript",
    Language.PYTHON: "Python",
}


def is_terminal(result: Dict[str, Any]) -> bool:
    status = result.get("status") or {}
    return (status.get("id") or 0) >= STATUS_ACCEPTED


def is_accepted(result: Dict[str, Any]) -> bool:
    return (result.get("status") or {}).get("id") == STATUS_ACCEPTED


@dataclass
class BatchItem:
    language_id: int
    source_code: str
    stdin: str
    expected_output: str


class Judge0Client:
    """Async client for the Judge0 batch API"""

    def __init__(
        self,
        base_url: str = None,
        api_key: Optional[str] = None,
        api_host: Optional[str] = None,
        request_timeout: float = None,
        poll_interval: float = None,
        poll_timeout: float = None,
        backoff: float = None,
        max_poll_interval: float = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or Config.JUDGE0_API_URL).rstrip("/")
        self.poll_interval = Config.JUDGE0_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.poll_timeout = Config.JUDGE0_POLL_TIMEOUT_SECONDS if poll_timeout is None else poll_timeout
        self.backoff = Config.JUDGE0_POLL_BACKOFF if backoff is None else backoff
        self.max_poll_interval = (Config.JUDGE0_MAX_POLL_INTERVAL_SECONDS
                                  if max_poll_interval is None else max_poll_interval)

        headers = {"Content-Type": "application/json"}
        api_key = api_key or Config.JUDGE0_API_KEY
        api_host = api_host or Config.JUDGE0_HOST
        if api_key and api_host:
            headers.update({"X-RapidAPI-Key": api_key, "X-RapidAPI-Host": api_host})

        timeout = request_timeout or Config.JUDGE0_REQUEST_TIMEOUT
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=5.0),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def submit_batch(self, items: Sequence[BatchItem]) -> List[str]:
        """Submit all items in one request and return their tokens in order"""
        payload = {"submissions": [asdict(item) for item in items]}
        logger.info("Submitting batch of %d item(s) to Judge0", len(items))
        try:
            response = await self._client.post(
                "/submissions/batch",
                params={"base64_encoded": "false"},
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error("Error submitting batch to Judge0: %s", e)
            raise UpstreamServiceError("Failed to submit code to Judge0") from e
        except ValueError as e:
            raise UpstreamServiceError("Judge0 returned an unreadable batch response") from e

        if not isinstance(data, list) or len(data) != len(items):
            raise UpstreamServiceError("Judge0 returned an unexpected batch response")

        tokens = []
        for index, entry in enumerate(data, start=1):
            token = entry.get("token") if isinstance(entry, dict) else None
            if not token:
                raise UpstreamServiceError(f"Judge0 rejected batch item {index}", errors=[entry])
            tokens.append(token)
        return tokens

    async def fetch_batch(self, tokens: Sequence[str]) -> List[Dict[str, Any]]:
        """Single status request for all tokens"""
        try:
            response = await self._client.get(
                "/submissions/batch",
                params={
                    "tokens": ",".join(tokens),
                    "base64_encoded": "false",
                    "fields": RESULT_FIELDS,
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error("Error polling Judge0 batch: %s", e)
            raise UpstreamServiceError("Failed to fetch results from Judge0") from e
        except ValueError as e:
            raise UpstreamServiceError("Judge0 returned an unreadable poll response") from e

        submissions = data.get("submissions") if isinstance(data, dict) else None
        if submissions is None:
            raise UpstreamServiceError("Judge0 returned an unexpected poll response")
        return [s for s in submissions if s is not None]

    async def poll_batch(self, tokens: Sequence[str]) -> List[Dict[str, Any]]:
        """Poll until every submission reaches a terminal status or the timeout elapses"""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.poll_timeout
        interval = self.poll_interval
        attempt = 0

        while True:
            attempt += 1
            submissions = await self.fetch_batch(tokens)
            if all(is_terminal(s) for s in submissions):
                logger.debug("Judge0 batch finished after %d poll(s)", attempt)
                return self._in_token_order(tokens, submissions)

            pending = sum(1 for s in submissions if not is_terminal(s))
            logger.debug("Judge0 poll %d: %d of %d submission(s) pending", attempt, pending, len(tokens))

            if loop.time() + interval > deadline:
                logger.error("Judge0 batch did not finish within %ss (%d poll(s))", self.poll_timeout, attempt)
                raise UpstreamServiceError(
                    f"Code execution did not finish within {self.poll_timeout:g} seconds",
                    status_code=504,
                )

            await asyncio.sleep(interval)
            interval = min(interval * self.backoff, self.max_poll_interval) if self.backoff > 1 else interval

    async def run_batch(self, items: Sequence[BatchItem]) -> List[Dict[str, Any]]:
        """Submit and wait; results are returned in the same order as items"""
        if not items:
            return []
        tokens = await self.submit_batch(items)
        logger.info("Judge0 accepted %d token(s)", len(tokens))
        return await self.poll_batch(tokens)

    @staticmethod
    def _in_token_order(tokens: Sequence[str], submissions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        by_token = {s.get("token"): s for s in submissions}
        if all(token in by_token for token in tokens):
            return [by_token[token] for token in tokens]
        return submissions
