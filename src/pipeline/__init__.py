"""Upload, commit and verify stages plus the orchestrator driving them."""
