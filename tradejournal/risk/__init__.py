"""Pre-trade risk controls: daily loss gate, checklist and context-aware sizing."""
