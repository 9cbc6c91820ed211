from brand_monitor.monitor.types import Provider
from brand_monitor.providers.base import BaseProviderAdapter
from brand_monitor.providers.llm_chatgpt import ChatGptAdapter
from brand_monitor.providers.llm_claude import ClaudeAdapter
from brand_monitor.providers.llm_gemini import GeminiAdapter
from brand_monitor.providers.llm_grok import GrokAdapter
from brand_monitor.providers.llm_mistral import MistralAdapter
from brand_monitor.providers.llm_perplexity import PerplexityAdapter

ADAPTER_REGISTRY: dict[Provider, type[BaseProviderAdapter]] = {
    Provider.CHATGPT: ChatGptAdapter,
    Provider.GEMINI: GeminiAdapter,
    Provider.MISTRAL: MistralAdapter,
    Provider.GROK: GrokAdapter,
    Provider.CLAUDE: ClaudeAdapter,
    Provider.PERPLEXITY: PerplexityAdapter,
}

# Settings attribute holding each provider's API key
CREDENTIAL_FIELDS: dict[Provider, str] = {
    Provider.CHATGPT: "openai_api_key",
    Provider.GEMINI: "google_ai_api_key",
    Provider.MISTRAL: "mistral_api_key",
    Provider.GROK: "xai_api_key",
    Provider.CLAUDE: "anthropic_api_key",
    Provider.PERPLEXITY: "perplexity_api_key",
}


def get_adapter(provider: Provider, api_key: str, **kwargs) -> BaseProviderAdapter:
    adapter_cls = ADAPTER_REGISTRY.get(provider)
    if adapter_cls is None:
        raise ValueError(f"No adapter for provider: {provider}")
    return adapter_cls(api_key=api_key, **kwargs)
