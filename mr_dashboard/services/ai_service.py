"""LLM summarization client: OpenAI chat completions and Gemini generateContent."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from mr_dashboard.config import get_ai_config

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert code reviewer analyzing GitLab merge request discussions. "
    "Provide insightful, well-structured summaries that help understand the review process and outcomes."
)

SUMMARY_PROMPT_TEMPLATE = """You are analyzing a GitLab merge request discussion. Please provide a comprehensive, well-structured summary that focuses on insights and narrative understanding.

The analysis should be organized into these sections:

**Key Insights:**
- Main discussion points and important observations
- What the code review revealed
- Technical concerns or praises mentioned

**Decisions Made:**
- Agreements reached and resolutions
- Approved changes or approaches
- Consensus items from the discussion

**Action Items:**
- Tasks to be completed and follow-up items
- Items requiring further review or implementation
- Blockers or dependencies identified

**Technical Details:**
- Code changes, implementation notes, and technical decisions
- Architecture or design considerations discussed
- Performance, security, or quality concerns

**Recommendations:**
- Best practices, suggestions for improvement, and next steps
- Process improvements
- Knowledge sharing opportunities

Context Information:
{context}

Discussion Content:
{content}

Please provide a detailed, insightful analysis that helps understand the merge request review process and outcomes. Focus on the human aspects of the review - collaboration, decision-making, and technical discussions rather than just repeating the raw data."""


class SummarizationError(RuntimeError):
    """The summary could not be generated. The message is safe to show to users."""


@dataclass
class AIProvider:
    name: str
    api_url: str
    api_key: str
    model: str


@dataclass
class SummaryResponse:
    summary: str
    provider: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"summary": self.summary, "provider": self.provider, "timestamp": self.timestamp.isoformat()}


def build_prompt(content: str, context: Optional[str] = None) -> str:
    return SUMMARY_PROMPT_TEMPLATE.format(context=context or "", content=content)


class AIService:
    """Dispatches summary requests to the currently selected provider."""

    def __init__(self, providers: Dict[str, AIProvider], default_provider: str,
                 timeout: float = 60.0, session: Optional[requests.Session] = None):
        self.providers = dict(providers)
        self.current_provider = default_provider
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, ai_config: Dict[str, Any]):
        providers = {
            key: AIProvider(
                name=p.get("name", key),
                api_url=p.get("api_url", ""),
                api_key=p.get("api_key", ""),
                model=p.get("model", ""),
            )
            for key, p in ai_config.get("providers", {}).items()
        }
        return cls(providers, ai_config.get("default_provider", "gemini"), ai_config.get("timeout", 60.0))

    def set_provider(self, provider: str) -> bool:
        """Select a provider. Unknown names are ignored. Returns True if selected."""
        if provider in self.providers:
            self.current_provider = provider
            return True
        return False

    def set_api_key(self, provider: str, api_key: str) -> bool:
        if provider in self.providers:
            self.providers[provider].api_key = api_key
            return True
        return False

    def get_available_providers(self) -> List[str]:
        return list(self.providers.keys())

    def get_current_provider(self) -> str:
        return self.current_provider

    def generate_summary(self, content: str, context: Optional[str] = None) -> SummaryResponse:
        """Summarize a discussion. Raises SummarizationError on any failure."""
        provider = self.providers.get(self.current_provider)
        if provider is None:
            raise SummarizationError("Unsupported AI provider")
        if not provider.api_key:
            raise SummarizationError(f"API key not set for {provider.name}")

        if self.current_provider == "openai":
            call = self._call_openai
        elif self.current_provider == "gemini":
            call = self._call_gemini
        else:
            raise SummarizationError("Unsupported AI provider")

        logger.info(f"Requesting summary from {provider.name} ({provider.model})")
        try:
            text = call(build_prompt(content, context), provider)
        except requests.RequestException as e:
            logger.error(f"{provider.name} request failed: {e}")
            raise SummarizationError(f"{provider.name} request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Unexpected {provider.name} response: {e}")
            raise SummarizationError(f"Unexpected response from {provider.name}") from e

        return SummaryResponse(summary=text, provider=provider.name, timestamp=datetime.now(timezone.utc))

    def _call_openai(self, prompt: str, provider: AIProvider) -> str:
        body = {
            "model": provider.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": 1000,
            "temperature": 0.3,
        }
        resp = self.session.post(
            provider.api_url,
            json=body,
            headers={"Authorization": f"Bearer {provider.api_key}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()["choices"][0]["message"]["content"]

    def _call_gemini(self, prompt: str, provider: AIProvider) -> str:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.3, "maxOutputTokens": 4096},
        }
        url = f"{provider.api_url.rstrip('/')}/{provider.model}:generateContent"
        resp = self.session.post(url, json=body, params={"key": provider.api_key}, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()["candidates"][0]["content"]["parts"][0]["text"]


_ai_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    """Singleton AI client built from config; applies a persisted provider selection."""
    from mr_dashboard.database import get_settings_db
    from mr_dashboard.extensions import services_lock

    global _ai_service
    if _ai_service is None:
        with services_lock:
            if _ai_service is None:
                service = AIService.from_config(get_ai_config())
                selected = get_settings_db().get_setting("ai_provider")
                if selected:
                    service.set_provider(selected)
                _ai_service = service
    return _ai_service
