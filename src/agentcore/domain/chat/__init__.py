"""Chat domain module.

Message model and chat histories. The tool executor lives in
``agentcore.domain.chat.tool_executor`` and is imported from there.

Modules:
- types: Message model (text, tool call request, tool call result)
- history: In-memory and JSON Lines chat histories
- tool_executor: Order-preserving, failure-isolating tool execution
"""

from agentcore.domain.chat.history import (
    BaseChatHistory,
    ChatHistory,
    FileChatHistory,
    InMemoryChatHistory,
)
from agentcore.domain.chat.types import (
    Attachment,
    FunctionCall,
    Message,
    MessageRequest,
    MessageRole,
    TextContent,
    ToolCall,
    ToolCallRequest,
    ToolCallResult,
    Usage,
)

__all__ = [
    "Attachment",
    "BaseChatHistory",
    "ChatHistory",
    "FileChatHistory",
    "FunctionCall",
    "InMemoryChatHistory",
    "Message",
    "MessageRequest",
    "MessageRole",
    "TextContent",
    "ToolCall",
    "ToolCallRequest",
    "ToolCallResult",
    "Usage",
]
