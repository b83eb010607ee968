"""Runtime concerns: retry execution and observability."""
