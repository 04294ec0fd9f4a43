"""Turn engine: events, reducer, dispatch and orchestration."""
