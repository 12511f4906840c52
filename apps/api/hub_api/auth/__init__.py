"""Identity provider adapter, redirect validation and session resolution."""
