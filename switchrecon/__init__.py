"""Payment-switch log reconciliation: tokenize channel logs and pair requests with responses."""
