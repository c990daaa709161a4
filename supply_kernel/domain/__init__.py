"""Pure domain values for the supply kernel."""
