"""Gemini dispatch layer.

Provides the pieces behind the relay endpoint:
  - Candidate list construction (ordered, de-duplicated, validated)
  - Vendor adapter (Gemini generateContent over httpx)
  - Failure classifier (ordered rule table: continue vs. abort)
  - Fallback dispatcher (sequential, first success wins)
  - Prompt / response normalizer (CORE field ordering, emphasis stripping)
"""
