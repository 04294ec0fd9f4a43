"""Tool factories bound to the execution context."""
