"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Build concierge and comparison prompts from sanitized history and
  restaurant context.
- Call the Groq chat-completion endpoint and surface failures as LLMError.
- Parse structured and comparison answers tolerantly, never raising.
"""
