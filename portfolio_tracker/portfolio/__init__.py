"""Portfolio domain package."""
