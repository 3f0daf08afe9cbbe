"""Agent orchestration.

Modules:
- agent: Agent facade (configuration, chat, stream, structured)
- session: Provider, instructions, tools, history and observers of one agent
- chat_orchestrator: Chat loop with tool call rounds
- stream_orchestrator: Streaming with exactly-once finalization
- structured: Structured output extraction with retries
- observers: Weakly held observer bus
- events: Event names and payloads
"""
