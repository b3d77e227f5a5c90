"""
Creative Copycat API - FastAPI application exposing the generation pipeline.
"""
