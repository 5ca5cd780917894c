"""Ledger collaborators: RPC client, signer and initializer seams, record layout."""
