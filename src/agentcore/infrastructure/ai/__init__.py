"""Model providers.

Modules:
- provider: AIProvider protocol used by the orchestrators
- anthropic_provider: Anthropic Messages API
- openai_provider: OpenAI chat completions, also used for DeepSeek
- factory: Provider selection from settings
"""

from agentcore.infrastructure.ai.anthropic_provider import AnthropicProvider
from agentcore.infrastructure.ai.openai_provider import OpenAIProvider
from agentcore.infrastructure.ai.provider import AIProvider, SyncChatMixin

__all__ = [
    "AIProvider",
    "AnthropicProvider",
    "OpenAIProvider",
    "SyncChatMixin",
]
