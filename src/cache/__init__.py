"""Search-result cache: fingerprints, stores, expiry sweep."""
