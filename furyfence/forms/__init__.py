"""Form submissions: normalization of inbound contact and quote requests."""
