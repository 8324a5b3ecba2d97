# tasks/ai_engine/external_scorer.py
"""
External AI Scorer
==================

Service layer for the three AI calls the task pipeline makes:

- ``prioritize_task``: 0-100 priority score, reasoning, next action, vagueness
- ``generate_tags``: up to five short tags for a task
- ``parse_voice_transcript``: split a dictated transcript into task drafts

This module is a pure service with NO Django ORM dependencies. Google Gemini
and xAI Grok are both reached through their OpenAI-compatible endpoints, so a
single ``openai`` client covers every supported provider.

Error Contract:
---------------
No method raises to its caller. Failures come back as a dictionary with
``error_code`` and ``error_message`` keys:

- INVALID_API_KEY: key rejected or missing permissions
- QUOTA_EXCEEDED: rate limit or quota exhausted
- MODEL_NOT_FOUND: model id unknown to the provider
- TIMEOUT / CONNECTION_ERROR: transport failures
- BAD_REQUEST / API_ERROR_<status>: other provider rejections
- EMPTY_RESPONSE / JSON_PARSE_ERROR / VALIDATION_ERROR: unusable output
- SCORER_NOT_CONFIGURED: unsupported provider or no key
- UNEXPECTED_ERROR: anything else
"""

from __future__ import annotations

import datetime
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional

from django.conf import settings
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    BadRequestError,
    NotFoundError,
    OpenAI,
    PermissionDeniedError,
    RateLimitError,
)

from .catalog import (
    DEFAULT_AI_MODEL_ID,
    PROVIDER_BASE_URLS,
    Provider,
    provider_model_name,
    resolve_provider,
)

logger = logging.getLogger(__name__)

ERROR_INVALID_API_KEY = "INVALID_API_KEY"
ERROR_QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
ERROR_MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
ERROR_TIMEOUT = "TIMEOUT"
ERROR_CONNECTION = "CONNECTION_ERROR"
ERROR_BAD_REQUEST = "BAD_REQUEST"
ERROR_EMPTY_RESPONSE = "EMPTY_RESPONSE"
ERROR_JSON_PARSE = "JSON_PARSE_ERROR"
ERROR_VALIDATION = "VALIDATION_ERROR"
ERROR_NOT_CONFIGURED = "SCORER_NOT_CONFIGURED"
ERROR_UNEXPECTED = "UNEXPECTED_ERROR"

MAX_TAGS = 5
UNTITLED_TASK = "Untitled Task"
DEFAULT_USER_CONTEXT = (
    "User has not specified any particular prioritization preferences. "
    "Use general best practices."
)
VAGUE_TASK_ACTION = (
    "This task is unclear. Please add more details to the title and/or "
    "description for better prioritization."
)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Gemini reports a bad key as HTTP 400 rather than 401.
_INVALID_KEY_MARKERS = ("API key not valid", "API_KEY_INVALID")


class ExternalAIScorer:
    """
    Client for one AI model on behalf of one user.

    Uses DEFERRED INITIALIZATION like the rest of the engine: construction
    never raises. When the model's provider is unsupported or no key was
    given, ``is_configured`` stays False and every call returns a
    SCORER_NOT_CONFIGURED error response.

    Example:
        >>> scorer = ExternalAIScorer("googleai/gemini-1.5-flash-latest", api_key="...")
        >>> result = scorer.generate_tags("Pay rent", "Transfer before the 5th")
        >>> result.get("tags")
        ['finance', 'rent', 'monthly']
    """

    DEFAULT_TEMPERATURE: float = 0.2
    DEFAULT_MAX_TOKENS: int = 600
    TRANSCRIPT_MAX_TOKENS: int = 1500
    DEFAULT_TIMEOUT: float = 30.0

    def __init__(
        self,
        model_id: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        **client_kwargs: Any,
    ) -> None:
        """
        Args:
            model_id: Catalog id such as ``"xai/grok-1"``.
            api_key: Already-resolved provider key (see AIOrchestrator.resolve_api_key).
            timeout: Request timeout in seconds; defaults to settings.AI_REQUEST_TIMEOUT.
            **client_kwargs: Extra keyword arguments for the OpenAI client.
        """
        self.model_id: str = model_id or DEFAULT_AI_MODEL_ID
        self.provider: Provider = resolve_provider(self.model_id)
        self.model: str = provider_model_name(self.model_id)
        self.timeout: float = timeout or getattr(settings, "AI_REQUEST_TIMEOUT", self.DEFAULT_TIMEOUT)
        self._client_kwargs: Dict[str, Any] = client_kwargs

        self.client: Optional[OpenAI] = None
        self.is_configured: bool = False
        self.configuration_error: Optional[str] = None

        self._configure(api_key)

    def _configure(self, api_key: Optional[str]) -> None:
        if self.provider is Provider.OTHER:
            self.configuration_error = (
                f"Model '{self.model_id}' does not belong to a supported provider."
            )
            logger.warning(f"ExternalAIScorer: {self.configuration_error}")
            return

        if not api_key:
            self.configuration_error = f"No API key available for model '{self.model_id}'."
            logger.warning(f"ExternalAIScorer: {self.configuration_error}")
            return

        try:
            self.client = OpenAI(
                api_key=api_key,
                base_url=PROVIDER_BASE_URLS[self.provider],
                **self._client_kwargs,
            )
            self.is_configured = True
            self.configuration_error = None
            logger.info(f"ExternalAIScorer initialized for model={self.model_id}")
        except Exception as e:
            self.configuration_error = f"Failed to initialize AI client: {str(e)}"
            logger.error(f"ExternalAIScorer: {self.configuration_error}")
            self.client = None
            self.is_configured = False

    # ------------------------------------------------------------------
    # Public calls
    # ------------------------------------------------------------------

    def prioritize_task(self, task_data: Dict[str, Any], user_context: Optional[str] = None) -> Dict[str, Any]:
        """
        Ask the model for a priority assessment of one task.

        Args:
            task_data: ``title``, ``description``, ``category``, ``tags``,
                ``due_date`` (YYYY-MM-DD) and ``priority``.
            user_context: Preference sentences plus the operation hint.

        Returns:
            {
                "ai_priority_score": int,   # 0..100
                "reasoning": str,
                "suggested_action": str,
                "is_vague": bool,
                "input_tokens": int,
                "output_tokens": int,
            }
            or an error response (see module docstring). An empty or
            unparseable answer is an error here.
        """
        messages = self._build_prioritization_messages(task_data, user_context or DEFAULT_USER_CONTEXT)
        logger.debug(f"ExternalAIScorer: Prioritizing '{task_data.get('title')}' with {self.model_id}")
        return self._invoke(
            "prioritization",
            messages,
            self._parse_prioritization,
            max_tokens=self.DEFAULT_MAX_TOKENS,
        )

    def generate_tags(self, title: str, description: str) -> Dict[str, Any]:
        """
        Generate up to five trimmed, non-empty tags.

        A malformed answer yields ``{"tags": []}`` with the tokens spent;
        only provider failures come back as error responses.
        """
        messages = self._build_tag_messages(title, description)
        return self._invoke(
            "tag generation",
            messages,
            self._parse_tags,
            max_tokens=self.DEFAULT_MAX_TOKENS,
            lenient=True,
        )

    def parse_voice_transcript(
        self, transcript: str, today: Optional[datetime.date] = None
    ) -> Dict[str, Any]:
        """
        Split a dictated transcript into task drafts.

        Returns ``{"parsed_tasks": [{"title", "description", "due_date"}], ...}``
        where ``due_date`` is a ``datetime.date`` or None.
        """
        today = today or datetime.date.today()
        messages = self._build_transcript_messages(transcript, today)
        return self._invoke(
            "transcript parsing",
            messages,
            self._parse_transcript,
            max_tokens=self.TRANSCRIPT_MAX_TOKENS,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _invoke(
        self,
        operation: str,
        messages: List[Dict[str, str]],
        parser: Callable[[Dict[str, Any]], Dict[str, Any]],
        max_tokens: int,
        lenient: bool = False,
    ) -> Dict[str, Any]:
        """
        Run one JSON-mode chat completion and hand the decoded body to ``parser``.

        ``lenient`` calls ``parser`` with an empty dict instead of failing
        when the body is empty or not JSON.
        """
        if not self.is_configured or self.client is None:
            return self._get_error_response(
                ERROR_NOT_CONFIGURED, self.configuration_error or "AI scorer not available"
            )

        input_tokens = output_tokens = 0
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.DEFAULT_TEMPERATURE,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
            input_tokens, output_tokens = self._usage_tokens(response)
            raw_content = (response.choices[0].message.content or "") if response.choices else ""
            logger.debug(f"ExternalAIScorer: Raw {operation} response: {raw_content[:200]}...")

            if not raw_content.strip():
                if lenient:
                    logger.warning(f"AI returned an empty {operation} response")
                    data: Dict[str, Any] = {}
                else:
                    return self._get_error_response(
                        ERROR_EMPTY_RESPONSE,
                        f"AI response was empty or not in the expected JSON format for {operation}.",
                        input_tokens,
                        output_tokens,
                    )
            else:
                try:
                    data = json.loads(raw_content)
                except json.JSONDecodeError:
                    if not lenient:
                        raise
                    logger.warning(f"AI returned non-JSON {operation} response")
                    data = {}

            result = parser(data if isinstance(data, dict) else {})
            result["input_tokens"] = input_tokens
            result["output_tokens"] = output_tokens
            return result

        except (AuthenticationError, PermissionDeniedError) as e:
            logger.error(f"AI authentication failed ({self.model_id}): {e}")
            return self._get_error_response(
                ERROR_INVALID_API_KEY, f"Invalid or missing API Key. {self._error_detail(e)}"
            )

        except RateLimitError as e:
            logger.warning(f"AI quota exceeded ({self.model_id}): {e}")
            return self._get_error_response(
                ERROR_QUOTA_EXCEEDED, f"Quota exceeded. {self._error_detail(e)}"
            )

        except NotFoundError as e:
            logger.error(f"AI model not found ({self.model_id}): {e}")
            return self._get_error_response(
                ERROR_MODEL_NOT_FOUND,
                f"Model '{self.model_id}' not found or access denied. Original error: {self._error_detail(e)}",
            )

        except APITimeoutError as e:
            logger.warning(f"AI request timed out ({self.model_id}): {e}")
            return self._get_error_response(ERROR_TIMEOUT, "AI request timed out")

        except APIConnectionError as e:
            logger.error(f"AI connection error ({self.model_id}): {e}")
            return self._get_error_response(ERROR_CONNECTION, "Could not connect to the AI provider")

        except BadRequestError as e:
            detail = self._error_detail(e)
            if any(marker in detail for marker in _INVALID_KEY_MARKERS):
                logger.error(f"AI authentication failed ({self.model_id}): {e}")
                return self._get_error_response(ERROR_INVALID_API_KEY, f"Invalid or missing API Key. {detail}")
            logger.error(f"AI bad request ({self.model_id}): {e}")
            return self._get_error_response(ERROR_BAD_REQUEST, f"Invalid request to AI provider: {detail}")

        except APIStatusError as e:
            logger.error(f"AI API status error: {e.status_code} - {e}")
            return self._get_error_response(
                f"API_ERROR_{e.status_code}", f"AI provider error (status {e.status_code})"
            )

        except json.JSONDecodeError as e:
            logger.error(f"Failed to decode AI {operation} response as JSON: {e}")
            return self._get_error_response(
                ERROR_JSON_PARSE, "AI returned invalid JSON response", input_tokens, output_tokens
            )

        except ValueError as e:
            logger.error(f"AI {operation} response validation failed: {e}")
            return self._get_error_response(ERROR_VALIDATION, str(e), input_tokens, output_tokens)

        except Exception as e:
            logger.exception(f"Unexpected error during AI {operation}: {e}")
            return self._get_error_response(ERROR_UNEXPECTED, f"Unexpected error: {type(e).__name__}")

    @staticmethod
    def _usage_tokens(response: Any):
        usage = getattr(response, "usage", None)
        if usage is None:
            return 0, 0
        return int(getattr(usage, "prompt_tokens", 0) or 0), int(getattr(usage, "completion_tokens", 0) or 0)

    @staticmethod
    def _error_detail(error: Exception) -> str:
        return getattr(error, "message", None) or str(error)

    @staticmethod
    def _get_error_response(
        error_code: str,
        error_message: str,
        input_tokens: int = 0,
        output_tokens: int = 0,
    ) -> Dict[str, Any]:
        return {
            "error_code": error_code,
            "error_message": error_message,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
        }

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def _build_prioritization_messages(self, task: Dict[str, Any], user_context: str) -> List[Dict[str, str]]:
        schema = json.dumps(
            {
                "ai_priority_score": 80,
                "reasoning": "string",
                "suggested_action": "string",
                "is_vague": False,
            }
        )
        system_prompt = (
            "You are an AI task prioritization expert. Give an objective priority "
            "assessment of the user's task.\n\n"
            "RULES:\n"
            "1. The user's prioritization preferences are your primary guide. A Deadlines "
            "focus makes the due date dominant; an Importance focus rewards tasks matching "
            "the named aspect; a Categories focus rewards the preferred categories; listed "
            "keywords in the title or description significantly raise the score.\n"
            "2. Urgency language (urgent, critical, blocker, ASAP, emergency) raises the "
            "score, especially when it agrees with the preferences.\n"
            "3. Treat the user-assigned priority as one input, not an override. Explain "
            "large disagreements in the reasoning.\n"
            "4. Set is_vague to true ONLY when title and description together are "
            "gibberish or too uninformative to act on (e.g. title '3133', description "
            f"'3333333'). A vague task scores 0-15 and its suggested_action must be: "
            f"\"{VAGUE_TASK_ACTION}\"\n"
            "5. ai_priority_score is an integer from 0 to 100 (100 = highest priority).\n"
            "6. Return ONLY valid JSON. No markdown, no commentary.\n"
            f"7. The output must strictly follow this schema: {schema}"
        )
        tags = task.get("tags") or []
        tag_text = " ".join(f"#{t}" for t in tags) if tags else "No tags provided."
        user_content = (
            f"User's Prioritization Preferences & Context:\n{user_context}\n\n"
            f"Task Title: {task.get('title', '')}\n"
            f"Task Description: {task.get('description', '')}\n"
            f"Task Category: {task.get('category', '')}\n"
            f"Task Tags: {tag_text}\n"
            f"Due Date: {task.get('due_date', '')}\n"
            f"User Priority: {task.get('priority', '')}"
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ]

    def _build_tag_messages(self, title: str, description: str) -> List[Dict[str, str]]:
        system_prompt = (
            "You analyze tasks and extract relevant keywords. Given a task title and "
            "description, generate 3 to 5 concise tags that categorize the task. Each tag "
            "is a single word or a very short phrase (max 2 words). Return ONLY valid "
            'JSON of the form {"tags": ["tag1", "tag2"]}.'
        )
        user_content = f"Task Title: {title}\nTask Description: {description}"
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ]

    def _build_transcript_messages(self, transcript: str, today: datetime.date) -> List[Dict[str, str]]:
        tomorrow = today + datetime.timedelta(days=1)
        system_prompt = (
            "You parse a user's dictated transcript into one or more distinct tasks.\n\n"
            "For each task provide:\n"
            "- title: concise action with key details, WITHOUT date or time phrases\n"
            "- description: the part of the transcript about this task, keeping any shared "
            "context, WITHOUT date or time phrases\n"
            "- due_date: YYYY-MM-DD when a date is mentioned, otherwise an empty string. "
            f"Today is {today.isoformat()}; resolve relative dates ('tomorrow' is "
            f"{tomorrow.isoformat()}) against it, and 'X days later' against the previously "
            "mentioned date.\n\n"
            "Split distinct actions into separate tasks. Return an empty list when nothing "
            "actionable is said. Return ONLY valid JSON of the form "
            '{"tasks": [{"title": "...", "description": "...", "due_date": "YYYY-MM-DD"}]}.'
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": f'Full Transcript:\n"{transcript}"'},
        ]

    # ------------------------------------------------------------------
    # Response validation
    # ------------------------------------------------------------------

    def _parse_prioritization(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Raises:
            ValueError: If the score is missing or not numeric.
        """
        if "ai_priority_score" not in data:
            raise ValueError("AI response is missing 'ai_priority_score'")
        try:
            score = int(round(float(data["ai_priority_score"])))
        except (TypeError, ValueError):
            raise ValueError("AI returned a non-numeric 'ai_priority_score'")

        return {
            "ai_priority_score": max(0, min(100, score)),
            "reasoning": str(data.get("reasoning") or ""),
            "suggested_action": str(data.get("suggested_action") or ""),
            "is_vague": _as_flag(data.get("is_vague")),
        }

    def _parse_tags(self, data: Dict[str, Any]) -> Dict[str, Any]:
        raw_tags = data.get("tags")
        if not isinstance(raw_tags, list):
            return {"tags": []}
        cleaned = [str(tag).strip() for tag in raw_tags if tag is not None and str(tag).strip()]
        return {"tags": cleaned[:MAX_TAGS]}

    def _parse_transcript(self, data: Dict[str, Any]) -> Dict[str, Any]:
        raw_tasks = data.get("tasks")
        if not isinstance(raw_tasks, list):
            raise ValueError("AI response is missing the 'tasks' list")

        parsed: List[Dict[str, Any]] = []
        for item in raw_tasks:
            if not isinstance(item, dict):
                continue
            title = str(item.get("title") or "").strip() or UNTITLED_TASK
            description = str(item.get("description") or "").strip() or title
            parsed.append(
                {
                    "title": title,
                    "description": description,
                    "due_date": _parse_iso_date(item.get("due_date")),
                }
            )
        return {"parsed_tasks": parsed}


def _parse_iso_date(value: Any) -> Optional[datetime.date]:
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value.strip()):
        return None
    try:
        return datetime.datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def _as_flag(value: Any) -> bool:
    # Models sometimes answer with the string "false"
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True
