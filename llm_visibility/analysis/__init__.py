"""Answer analysis.

Turns normalized provider answers into structured judgments:
  1. Judge client (secondary LLM call)
  2. JSON repair for judge output
  3. Response classifier (our brand / competitor / other mentions)
  4. Sentiment classifier
  5. Competitor discovery
  6. Aggregator (visibility, sentiment and web search summaries)
"""
