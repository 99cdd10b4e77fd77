"""Market context scoring, sentiment thresholds and regime classification."""
