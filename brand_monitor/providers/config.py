"""Per-provider call configuration.

Vendor differences (endpoint, model, credential, retry cap) are data here;
adapters only differ in how they shape the request and read the reply.
"""

from dataclasses import dataclass

from brand_monitor.monitor.types import Provider

DEFAULT_TIMEOUT_SECONDS = 45.0
DEFAULT_MAX_RETRIES = 2
BASE_RETRY_DELAY_SECONDS = 2.0

# Substrings that mark a rate-limit or transient overload error
RETRYABLE_MARKERS = ("429", "RESOURCE_EXHAUSTED", "rate", "503", "quota", "Too Many Requests")


@dataclass(frozen=True)
class ProviderConfig:
    provider: Provider
    model: str
    api_url: str
    credential_env: str  # env var holding the API key, used in error messages
    max_retries: int = DEFAULT_MAX_RETRIES
    max_tokens: int = 800


PROVIDER_CONFIGS: dict[Provider, ProviderConfig] = {
    Provider.CHATGPT: ProviderConfig(
        provider=Provider.CHATGPT,
        model="gpt-4o-search-preview",
        api_url="https://api.openai.com/v1/chat/completions",
        credential_env="OPENAI_API_KEY",
    ),
    Provider.GEMINI: ProviderConfig(
        provider=Provider.GEMINI,
        model="gemini-2.0-flash",
        api_url="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        credential_env="GOOGLE_AI_API_KEY",
    ),
    Provider.MISTRAL: ProviderConfig(
        provider=Provider.MISTRAL,
        model="mistral-small-latest",
        api_url="https://api.mistral.ai/v1/conversations",
        credential_env="MISTRAL_API_KEY",
        max_retries=3,
    ),
    Provider.GROK: ProviderConfig(
        provider=Provider.GROK,
        model="grok-4-1-fast-non-reasoning",
        api_url="https://api.x.ai/v1/responses",
        credential_env="XAI_API_KEY",
    ),
    Provider.CLAUDE: ProviderConfig(
        provider=Provider.CLAUDE,
        model="claude-haiku-4-5-20251001",
        api_url="https://api.anthropic.com/v1/messages",
        credential_env="ANTHROPIC_API_KEY",
        max_tokens=1024,
    ),
    Provider.PERPLEXITY: ProviderConfig(
        provider=Provider.PERPLEXITY,
        model="sonar",
        api_url="https://api.perplexity.ai/chat/completions",
        credential_env="PERPLEXITY_API_KEY",
    ),
}
