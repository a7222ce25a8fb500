"""HTTP binding for the valuation and analytics engine."""
