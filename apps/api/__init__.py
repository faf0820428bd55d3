"""Complaint desk HTTP API."""
