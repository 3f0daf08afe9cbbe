"""Orchestration core for tool-calling AI agents.

Example:
    from agentcore import Agent, InMemoryChatHistory
    from agentcore.infrastructure.ai import OpenAIProvider

    agent = Agent(provider=OpenAIProvider(api_key="sk-..."), chat_history=InMemoryChatHistory())
    print(agent.chat("Hello").text)
"""

from agentcore.domain.agent.agent import Agent
from agentcore.domain.agent.events import AgentEvent, ErrorEvent
from agentcore.domain.agent.session import DEFAULT_INSTRUCTIONS
from agentcore.domain.agent.stream_orchestrator import ChatStream
from agentcore.domain.chat.history import ChatHistory, FileChatHistory, InMemoryChatHistory
from agentcore.domain.chat.types import (
    Message,
    MessageRequest,
    MessageRole,
    ToolCallRequest,
    ToolCallResult,
    Usage,
)
from agentcore.domain.tools.base import FunctionTool, Tool
from agentcore.shared.exceptions import (
    AgentError,
    ConfigurationError,
    ProviderError,
    StructuredExtractionError,
)

__all__ = [
    "DEFAULT_INSTRUCTIONS",
    "Agent",
    "AgentError",
    "AgentEvent",
    "ChatHistory",
    "ChatStream",
    "ConfigurationError",
    "ErrorEvent",
    "FileChatHistory",
    "FunctionTool",
    "InMemoryChatHistory",
    "Message",
    "MessageRequest",
    "MessageRole",
    "ProviderError",
    "StructuredExtractionError",
    "Tool",
    "ToolCallRequest",
    "ToolCallResult",
    "Usage",
]
