"""Routers mounted by :func:`apps.api.main.create_app`."""
