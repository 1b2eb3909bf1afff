"""Ball-by-ball scoring engine: events, reducer, undo, rates and DLS."""
