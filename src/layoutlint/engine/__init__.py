"""Rule execution engine: scope, rule context, location resolution, suppression and targets."""
