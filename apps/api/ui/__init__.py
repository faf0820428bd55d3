"""Streamlit console for the complaint desk."""
