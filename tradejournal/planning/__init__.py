"""Personal finance planning: FIRE projections, debt payoff and emergency fund."""
