"""Ledger, lesson provider, insight oracle and text-generation client."""
