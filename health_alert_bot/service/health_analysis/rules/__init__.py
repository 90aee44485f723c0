"""Rule-based alert evaluation over the latest reading and its short history."""
