"""wikiauth: link Discord accounts to Wikimedia global accounts."""
