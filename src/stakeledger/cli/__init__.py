"""Command line interface for the staking ledger."""
