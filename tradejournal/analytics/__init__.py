"""Performance, risk, session and predictive analytics over journaled trades."""
