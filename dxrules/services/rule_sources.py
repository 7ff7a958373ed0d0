"""
dxrules - Compiled Rule Set Sources
Fetches published rule set artifacts from a directory, over HTTP, or from Redis
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import httpx
import redis
from redis import Redis, RedisError
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from dxrules.config import settings
from dxrules.schemas import CompiledRuleSet
from dxrules.exceptions import RuleSourceUnavailable

logger = logging.getLogger(__name__)

_NAMESPACE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def check_namespace(namespace: str) -> str:
    """Namespaces end up in file names and keys; keep them to a safe alphabet"""
    if not isinstance(namespace, str) or not _NAMESPACE_PATTERN.match(namespace):
        raise ValueError(f"Invalid rules namespace: {namespace!r}")
    return namespace


def rule_set_key(prefix: str, namespace: str, version: Optional[str] = None) -> str:
    """Redis key: prefix:namespace[:version]"""
    parts = [prefix, check_namespace(namespace)]
    if version:
        parts.append(version)
    return ":".join(parts)


def parse_rule_set(payload: Union[str, bytes], namespace: str, source: str) -> CompiledRuleSet:
    """
    Parse a published artifact

    Raises:
        RuleSourceUnavailable: payload is not a valid compiled rule set, or it
            belongs to another namespace
    """
    try:
        rule_set = CompiledRuleSet.from_json(payload)
    except ValidationError as e:
        raise RuleSourceUnavailable(
            f"Invalid rule set artifact for namespace '{namespace}'",
            namespace=namespace,
            source=source,
            details={"errors": e.error_count()},
        ) from e

    if rule_set.namespace != namespace:
        logger.error(
            f"Artifact for '{namespace}' declares namespace '{rule_set.namespace}'"
        )
        raise RuleSourceUnavailable(
            f"Artifact for namespace '{namespace}' holds namespace '{rule_set.namespace}'",
            namespace=namespace,
            source=source,
            details={"artifact_namespace": rule_set.namespace},
        )
    return rule_set


# =============================================================================
# Sources
# =============================================================================

class RuleSource(ABC):
    """Where compiled rule sets come from"""

    name = "base"

    @abstractmethod
    async def fetch(self, namespace: str) -> CompiledRuleSet:
        """
        Fetch the current compiled rule set for a namespace

        Raises:
            RuleSourceUnavailable: source unreachable or artifact invalid
        """


class FileRuleSource(RuleSource):
    """Reads <directory>/<namespace>.json"""

    name = "file"

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def artifact_path(self, namespace: str) -> Path:
        return self.directory / f"{check_namespace(namespace)}.json"

    async def fetch(self, namespace: str) -> CompiledRuleSet:
        path = self.artifact_path(namespace)
        try:
            payload = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to read rule set {path}: {e}")
            raise RuleSourceUnavailable(
                f"Cannot read rule set artifact {path}",
                namespace=namespace,
                source=self.name,
            ) from e

        logger.debug(f"Read rule set artifact {path}")
        return parse_rule_set(payload, namespace, self.name)


class HttpRuleSource(RuleSource):
    """GETs <base_url>/<namespace>.json"""

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.rules_fetch_timeout
        self._transport = transport

    def artifact_url(self, namespace: str) -> str:
        return f"{self.base_url}/{check_namespace(namespace)}.json"

    @retry(
        stop=stop_after_attempt(settings.rules_fetch_max_retries),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True
    )
    async def _download(self, url: str) -> bytes:
        """Download with retry on transport errors"""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            # Published artifacts carry cache headers; always ask for the current one
            response = await client.get(url, headers={"Cache-Control": "no-cache"})
            response.raise_for_status()
            return response.content

    async def fetch(self, namespace: str) -> CompiledRuleSet:
        url = self.artifact_url(namespace)
        try:
            payload = await self._download(url)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch rule set {url}: {e}")
            raise RuleSourceUnavailable(
                f"Failed to fetch compiled rules from {url}",
                namespace=namespace,
                source=self.name,
            ) from e

        logger.debug(f"Fetched rule set artifact {url} ({len(payload)} bytes)")
        return parse_rule_set(payload, namespace, self.name)


class RedisRuleSource(RuleSource):
    """Reads the current artifact stored at key <prefix>:<namespace>"""

    name = "redis"

    def __init__(self, client: Optional[Redis] = None, key_prefix: Optional[str] = None):
        self.redis_client = client or redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        self.key_prefix = key_prefix or settings.redis_key_prefix

    async def fetch(self, namespace: str) -> CompiledRuleSet:
        key = rule_set_key(self.key_prefix, namespace)
        try:
            payload = await asyncio.to_thread(self.redis_client.get, key)
        except RedisError as e:
            logger.error(f"Redis read failed for {key}: {e}")
            raise RuleSourceUnavailable(
                f"Redis unavailable while reading {key}",
                namespace=namespace,
                source=self.name,
            ) from e

        if payload is None:
            raise RuleSourceUnavailable(
                f"No compiled rule set stored at {key}",
                namespace=namespace,
                source=self.name,
            )
        return parse_rule_set(payload, namespace, self.name)


def build_rule_source() -> RuleSource:
    """Create the source selected by settings.rules_source"""
    if settings.rules_source == "http":
        return HttpRuleSource(settings.rules_base_url)
    if settings.rules_source == "redis":
        return RedisRuleSource()
    return FileRuleSource(settings.rules_dir)
