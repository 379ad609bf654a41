"""LLM provider gateway.

Dispatches the same prompt to heterogeneous LLM providers with:
  - Provider Adapters (request shapes, tool use, citation extraction)
  - Redirect Resolver (grounding redirect links → destination URLs)
  - Bounded Concurrency Dispatcher (runs × prompts × models fan-out)
  - Response Normalizer (answer text + consulted URLs)
"""
