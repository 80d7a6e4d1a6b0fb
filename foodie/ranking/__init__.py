"""
Mood-to-food resolution engine.

Responsibilities:
- Accept a user intent (mood, cravings, profile) and a candidate set.
- Ask the remote AI ranker for an ordering, bounded by a timeout.
- Fall back to deterministic lexical scoring when the AI is unavailable.
- Reconcile ranked ids against the canonical candidates and cache the result.
"""
