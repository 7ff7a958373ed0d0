"""
dxrules - Rule Publisher
Compiles authored rule rows and publishes current + versioned artifacts
"""

import csv
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import redis
from redis import Redis

from dxrules.config import settings
from dxrules.schemas import CompiledRuleSet
from dxrules.modules.rule_compiler import compile_rules
from dxrules.services.rule_sources import check_namespace, rule_set_key

logger = logging.getLogger(__name__)


@dataclass
class PublishResult:
    """Where a rule set was written"""
    namespace: str
    rule_count: int
    current_location: str
    versioned_location: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "rule_count": self.rule_count,
            "current": self.current_location,
            "versioned": self.versioned_location,
        }


def version_stamp(generated_at: datetime) -> str:
    """ISO timestamp usable in file names and keys"""
    return generated_at.isoformat().replace(":", "-").replace(".", "-").replace("+", "-")


# =============================================================================
# Reading Authored Rows
# =============================================================================

def rows_from_table(values: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    """
    Convert a sheet range (header row + data rows) into row mappings

    Args:
        values: Rows of cells; the first row holds column headers

    Returns:
        One dict per data row; cells missing from short rows are None
    """
    if len(values) < 2:
        return []
    headers = [str(h or "").strip() for h in values[0]]
    rows = []
    for cells in values[1:]:
        rows.append({
            header: (cells[i] if i < len(cells) else None)
            for i, header in enumerate(headers)
            if header
        })
    return rows


def read_csv_rows(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Read a CSV export of the authoring sheet"""
    with open(path, newline="", encoding="utf-8-sig") as f:
        values = list(csv.reader(f))
    rows = rows_from_table(values)
    logger.info(f"Read {len(rows)} rule rows from {path}")
    return rows


# =============================================================================
# Publishers
# =============================================================================

class FileRulePublisher:
    """Writes <dir>/<ns>.json (atomic replace) and <dir>/<ns>_<stamp>.json"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def publish(self, rule_set: CompiledRuleSet) -> PublishResult:
        namespace = check_namespace(rule_set.namespace)
        self.directory.mkdir(parents=True, exist_ok=True)

        payload = rule_set.to_json()
        current = self.directory / f"{namespace}.json"
        versioned = self.directory / f"{namespace}_{version_stamp(rule_set.generated_at)}.json"

        versioned.write_text(payload, encoding="utf-8")

        # Readers never see a half-written current artifact
        staging = current.with_name(current.name + ".tmp")
        staging.write_text(payload, encoding="utf-8")
        staging.replace(current)

        logger.info(f"✓ Published {len(rule_set.rules)} rules to {current} and {versioned}")
        return PublishResult(namespace, len(rule_set.rules), str(current), str(versioned))


class RedisRulePublisher:
    """Sets <prefix>:<ns> and <prefix>:<ns>:<stamp>"""

    def __init__(self, client: Optional[Redis] = None, key_prefix: Optional[str] = None):
        self.redis_client = client or redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        self.key_prefix = key_prefix or settings.redis_key_prefix

    def publish(self, rule_set: CompiledRuleSet) -> PublishResult:
        payload = rule_set.to_json()
        current = rule_set_key(self.key_prefix, rule_set.namespace)
        versioned = rule_set_key(
            self.key_prefix, rule_set.namespace, version_stamp(rule_set.generated_at)
        )

        pipe = self.redis_client.pipeline()
        pipe.set(versioned, payload)
        pipe.set(current, payload)
        pipe.execute()

        logger.info(f"✓ Published {len(rule_set.rules)} rules to redis keys {current}, {versioned}")
        return PublishResult(rule_set.namespace, len(rule_set.rules), current, versioned)


def publish_rules(
    rows: Iterable[Mapping[str, Any]],
    namespace: str,
    publisher,
    generated_at: Optional[datetime] = None
) -> PublishResult:
    """
    Compile rows and publish the result

    A CompileError propagates before anything is written, so the previously
    published artifact stays current.

    Args:
        rows: Authored rule rows
        namespace: Target namespace
        publisher: FileRulePublisher or RedisRulePublisher
        generated_at: Generation timestamp (default now, UTC)

    Returns:
        PublishResult
    """
    rule_set = compile_rules(rows, namespace, generated_at)
    return publisher.publish(rule_set)
