"""
MediFlow Analysis Gateway

Backend for the MediFlow healthcare workflow dashboard: structured clinical
analysis of patient records using Google Gemini, with safe fallbacks.
"""
__version__ = "1.0.0"
