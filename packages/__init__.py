"""Shared packages used by the complaint desk applications."""
