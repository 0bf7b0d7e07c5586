from __future__ import annotations

import logging
from typing import Dict, Optional, Set

logger = logging.getLogger(__name__)


class AgentPool:
    """Tracks online agents and assigns users to them.

    Assignment is sticky: a user keeps the agent they were bound to while that
    agent stays online. Otherwise the online agent with the fewest bound users
    is chosen, ties broken by agent id so the choice is deterministic.
    """

    def __init__(self) -> None:
        self._online: Set[str] = set()
        self._load: Dict[str, int] = {}
        self._bindings: Dict[str, str] = {}

    def agent_online(self, agent_id: str) -> None:
        self._online.add(agent_id)
        self._load.setdefault(agent_id, 0)
        logger.info("Agent %s online", agent_id)

    def agent_offline(self, agent_id: str) -> None:
        self._online.discard(agent_id)
        logger.info("Agent %s offline", agent_id)

    def is_online(self, agent_id: str) -> bool:
        return agent_id in self._online

    def online_agents(self) -> list[str]:
        return sorted(self._online)

    def load(self, agent_id: str) -> int:
        return self._load.get(agent_id, 0)

    def agent_for(self, user_id: str) -> Optional[str]:
        return self._bindings.get(user_id)

    def assign(self, user_id: str) -> Optional[str]:
        existing = self._bindings.get(user_id)
        if existing is not None and existing in self._online:
            logger.debug("User %s resumes agent %s", user_id, existing)
            return existing
        if existing is not None:
            self._release_binding(user_id, existing)
        if not self._online:
            logger.warning("No agent online for user %s", user_id)
            return None
        best = min(self._online, key=lambda agent_id: (self._load.get(agent_id, 0), agent_id))
        self._bindings[user_id] = best
        self._load[best] = self._load.get(best, 0) + 1
        logger.info("User %s assigned to agent %s (load %d)", user_id, best, self._load[best])
        return best

    def release(self, user_id: str) -> Optional[str]:
        agent_id = self._bindings.get(user_id)
        if agent_id is None:
            return None
        self._release_binding(user_id, agent_id)
        logger.info("User %s released agent %s", user_id, agent_id)
        return agent_id

    def _release_binding(self, user_id: str, agent_id: str) -> None:
        self._bindings.pop(user_id, None)
        self._load[agent_id] = max(self._load.get(agent_id, 0) - 1, 0)
