# tasks/ai_engine/cache.py

import json
import hashlib
import logging
from typing import Dict, Any, Callable
from django.core.cache import cache
from django.conf import settings

logger = logging.getLogger(__name__)


class AITagCache:
    """
    Caching layer for AI tag generation.

    Tags depend only on the model and the task text, so identical
    title/description pairs are served from the Django cache (Redis in
    production) instead of paying for another completion.

    - Keys are SHA256 digests of normalized inputs.
    - Cache failures fall through to the live call.
    - Error responses are never stored.
    - A hit reports zero tokens: nothing was spent on it.
    """

    def __init__(
        self,
        ttl: int = 86400,
        version: str = "v1",
    ):
        """
        Args:
            ttl: Time-to-live in seconds (default: 24 hours, overridable via AI_CACHE_TTL).
            version: Bumped to invalidate entries when the prompt changes.
        """
        self.ttl = getattr(settings, 'AI_CACHE_TTL', ttl)
        self.version = version

    def get_or_set_tags(
        self,
        model_id: str,
        title: str,
        description: str,
        tagging_func: Callable[[], Dict[str, Any]]
    ) -> Dict[str, Any]:
        cache_key = self._generate_key(model_id, title, description)

        try:
            cached_result = cache.get(cache_key)
            if cached_result is not None:
                logger.debug(f"AI tag cache hit: {cache_key}")
                return {"tags": list(cached_result.get("tags", [])), "input_tokens": 0, "output_tokens": 0}
        except Exception as e:
            logger.error(f"Cache retrieval failure: {str(e)}")

        logger.info(f"AI tag cache miss: {cache_key}. Invoking AI service.")
        result = tagging_func()

        try:
            if not result.get("error_code") and result.get("tags"):
                cache.set(cache_key, {"tags": result["tags"]}, timeout=self.ttl)
        except Exception as e:
            logger.error(f"Cache persistence failure: {str(e)}")

        return result

    def _generate_key(self, model_id: str, title: str, description: str) -> str:
        payload = {
            "model": model_id,
            "title": title.strip().lower(),
            "description": description.strip().lower(),
            "version": self.version,
        }
        serialized_payload = json.dumps(payload, sort_keys=True)
        hash_digest = hashlib.sha256(serialized_payload.encode()).hexdigest()
        return f"ai_tags_{self.version}_{hash_digest}"
