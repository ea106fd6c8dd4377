"""Ticket issuance and minting services."""
