"""
dxrules - Rule Store
Process-wide cache of compiled rule sets, one slot per namespace
"""

import asyncio
import logging
from typing import Dict, Optional

from dxrules.config import settings
from dxrules.schemas import CompiledRuleSet
from dxrules.exceptions import RuleSourceUnavailable
from dxrules.services.rule_sources import RuleSource, build_rule_source, check_namespace

logger = logging.getLogger(__name__)


class RuleStore:
    """
    Holds the active (rules with active=false removed) rule set per namespace

    Cached sets are served until an explicit forced reload. Switching
    namespace counts as a forced reload. A failed reload is raised to the
    caller, never papered over with the previous set: the slot is emptied so
    the next get() fetches again. Callers that choose to degrade can read the
    old set with peek().
    """

    def __init__(self, source: RuleSource, fetch_timeout: Optional[float] = None):
        self.source = source
        self.fetch_timeout = fetch_timeout
        self._cache: Dict[str, CompiledRuleSet] = {}
        # Sets whose reload failed; only reachable through peek()
        self._stale: Dict[str, CompiledRuleSet] = {}
        self._active_namespace: Optional[str] = None

    async def get(self, namespace: str = "core", force_reload: bool = False) -> CompiledRuleSet:
        """
        Return the compiled rule set for a namespace

        Args:
            namespace: Rules namespace
            force_reload: Bypass the cache and fetch from the source

        Returns:
            Compiled rule set containing only active rules

        Raises:
            RuleSourceUnavailable: invalid namespace, fetch failed or timed out
        """
        try:
            check_namespace(namespace)
        except ValueError as e:
            raise RuleSourceUnavailable(
                str(e), namespace=str(namespace), source=self.source.name
            ) from e

        switched = self._active_namespace is not None and namespace != self._active_namespace
        self._active_namespace = namespace

        cached = self._cache.get(namespace)
        if cached is not None and not force_reload and not switched:
            logger.debug(f"Cache HIT: rule set '{namespace}' ({len(cached.rules)} rules)")
            return cached

        reason = "forced reload" if force_reload else ("namespace switch" if switched else "cache miss")
        logger.info(f"Loading rule set '{namespace}' from {self.source.name} source ({reason})")

        try:
            fetched = await self._fetch(namespace)
        except RuleSourceUnavailable:
            previous = self._cache.pop(namespace, None)
            if previous is not None:
                self._stale[namespace] = previous
                logger.warning(f"Reload of '{namespace}' failed; cached set withdrawn")
            raise

        active = [r for r in fetched.rules if r.active]
        rule_set = fetched.model_copy(update={"rules": active})

        # Whole-object swap; concurrent reloads are last-writer-wins
        self._cache[namespace] = rule_set
        self._stale.pop(namespace, None)

        logger.info(
            f"✓ Rule set '{namespace}' generated {rule_set.generated_at.isoformat()}: "
            f"{len(active)} active of {len(fetched.rules)} rules"
        )
        return rule_set

    async def _fetch(self, namespace: str) -> CompiledRuleSet:
        if self.fetch_timeout is None:
            return await self.source.fetch(namespace)
        try:
            return await asyncio.wait_for(self.source.fetch(namespace), timeout=self.fetch_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Rule set fetch for '{namespace}' timed out after {self.fetch_timeout}s")
            raise RuleSourceUnavailable(
                f"Timed out fetching rule set '{namespace}'",
                namespace=namespace,
                source=self.source.name,
                details={"timeout": self.fetch_timeout},
            ) from e

    def peek(self, namespace: str) -> Optional[CompiledRuleSet]:
        """Last loaded rule set without fetching, even if its reload failed (None if never loaded)"""
        return self._cache.get(namespace) or self._stale.get(namespace)

    def invalidate(self, namespace: Optional[str] = None) -> int:
        """Drop one namespace, or all of them; returns slots dropped"""
        if namespace is None:
            dropped = len(set(self._cache) | set(self._stale))
            self._cache.clear()
            self._stale.clear()
        else:
            cached = self._cache.pop(namespace, None)
            stale = self._stale.pop(namespace, None)
            dropped = 1 if (cached or stale) is not None else 0
        logger.info(f"Invalidated {dropped} cached rule set(s)")
        return dropped


# =============================================================================
# Global Store Instance
# =============================================================================

# Lazy initialization
_rule_store: Optional[RuleStore] = None


def get_rule_store() -> RuleStore:
    """Get or create the process-wide rule store"""
    global _rule_store
    if _rule_store is None:
        _rule_store = RuleStore(build_rule_source(), fetch_timeout=settings.rules_fetch_timeout)
    return _rule_store


async def load_rule_set(
    namespace: Optional[str] = None,
    force_reload: Optional[bool] = None,
    store: Optional[RuleStore] = None
) -> CompiledRuleSet:
    """
    Load the compiled rule set, defaulting namespace/force-reload from settings

    Args:
        namespace: Rules namespace (default settings.rules_namespace)
        force_reload: Bypass cache (default settings.rules_force_reload)
        store: Store to use (default: process-wide store)

    Returns:
        Compiled rule set

    Raises:
        RuleSourceUnavailable: fetch failed
    """
    store = store or get_rule_store()
    return await store.get(
        namespace or settings.rules_namespace,
        settings.rules_force_reload if force_reload is None else force_reload,
    )
