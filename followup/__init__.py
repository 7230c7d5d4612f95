"""Follow-up trust and triggering engine."""
