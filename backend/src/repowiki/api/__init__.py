"""HTTP API for repowiki."""
