"""Valuation, analytics and snapshot services."""
