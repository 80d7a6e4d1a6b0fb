"""
AI ranking service.

Responsibilities:
- Manage Groq API configuration and credentials.
- Build prompts from the user's mood, cravings, profile and candidates.
- Call the Groq LLM to pick hotspots and rank restaurants with reasoning.
- Extract index arrays from the reply, dropping indices out of range.
- Signal failure so the HTTP layer can answer with ``fallback: true``.
"""
